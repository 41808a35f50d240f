from LC_Phase.lc_phase_the_file import main

if __name__ == "__main__":
    main()
