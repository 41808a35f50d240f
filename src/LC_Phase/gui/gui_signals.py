from PyQt6.QtCore import QObject, pyqtSignal

from LC_Phase.processing.analysis_session import ProgressSink


class ProcessingSignals(QObject):
    """Signals crossing from the analysis thread to the UI thread"""
    started = pyqtSignal(str)
    completed = pyqtSignal(str)
    cancelled = pyqtSignal()
    error = pyqtSignal(str)

    # frame_index, estimated_total, latest FrameResult
    progress = pyqtSignal(int, int, object)
    # Statistics of the finished (or cancelled) series
    statistics_ready = pyqtSignal(object)


class SignalProgressSink(ProgressSink):
    """
    Forwards session progress as a Qt signal. Emitting to receivers in another
    thread queues the call, so the analysis loop never waits on the UI.
    """

    def __init__(self, signals: ProcessingSignals):
        self.signals = signals

    def on_progress(self, frame_index, estimated_total, latest_result):
        self.signals.progress.emit(frame_index, estimated_total, latest_result)
