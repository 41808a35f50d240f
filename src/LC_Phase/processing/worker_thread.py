from PyQt6.QtCore import QThread, pyqtSignal

from LC_Phase.gui.gui_signals import ProcessingSignals, SignalProgressSink
from LC_Phase.processing.analysis_session import AnalysisSession, SessionState
from LC_Phase.processing.frame_source import FrameSource
from LC_Phase.utils.config_setup import AnalysisConfig
from LC_Phase.utils.log_setup import logger


class AnalysisWorker(QThread):
    """Worker thread running one analysis session off the UI thread."""

    # Thread-specific signals
    finished_with_state = pyqtSignal(object)

    def __init__(self, frame_source: FrameSource, config: AnalysisConfig = None,
                 signals: ProcessingSignals = None, parent=None):
        super().__init__(parent)
        self.frame_source = frame_source
        self.signals = signals

        sink = SignalProgressSink(signals) if signals else None
        # The session, its mask and frame buffers belong to this thread while it runs
        self.session = AnalysisSession(config=config, progress_sink=sink)
        self.user_cancelled = False

    def run(self):
        try:
            if self.signals:
                self.signals.started.emit("Phase analysis started")

            state = self.session.run(self.frame_source)

            if self.signals:
                if state is SessionState.COMPLETED:
                    self.signals.statistics_ready.emit(self.session.statistics())
                    self.signals.completed.emit("Phase analysis completed successfully!")
                elif state is SessionState.CANCELLED:
                    # Partial results stay usable
                    self.signals.statistics_ready.emit(self.session.statistics())
                    self.signals.cancelled.emit()
                else:
                    self.signals.error.emit(f"Phase analysis failed: {self.session.failure_reason}")

            self.finished_with_state.emit(state)

        except Exception as e:
            error_msg = f"Processing error: {str(e)}"
            logger.error(error_msg)
            if self.signals:
                self.signals.error.emit(error_msg)

    def cancel(self):
        """Cancel the analysis after the current frame."""
        self.user_cancelled = True
        self.session.cancel()
