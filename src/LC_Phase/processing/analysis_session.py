#!/usr/bin/env python3
"""
Analysis Session

Drives one phase analysis over a frame source: builds the electrode mask from
the first frame, runs the per-frame checks in temporal order and keeps the
resulting series. Runs synchronously; a worker thread may call run() to keep
a UI responsive, and cancel() is honoured between frames.
"""

import copy
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError, wait as futures_wait
from enum import Enum
from typing import List, Optional, Tuple

import numpy as np

from LC_Phase.checks.electrode_mask import build_mask
from LC_Phase.checks.frame_data import Frame, FrameResult
from LC_Phase.processing.frame_pipeline import analyze_frame
from LC_Phase.processing.frame_source import FrameSource, VideoFileFrameSource
from LC_Phase.processing.statistics import Statistics, summarize
from LC_Phase.utils.config_manager import ConfigManager
from LC_Phase.utils.config_setup import AnalysisConfig, validate_config
from LC_Phase.utils.exceptions import (
    FrameAcquisitionError, FrameProcessingError, FrameSourceTimeout,
    MaskConstructionError, SessionStateError, SourceExhaustionBeforeStart
)
from LC_Phase.utils.log_setup import logger


class SessionState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class ProgressSink:
    """Receives a notification after every processed frame. Must not block."""

    def on_progress(self, frame_index: int, estimated_total: int, latest_result: FrameResult) -> None:
        pass


class AnalysisSession:
    def __init__(self, config: AnalysisConfig = None, progress_sink: ProgressSink = None):
        if config is None:
            config = ConfigManager().get_analysis_config()
        # Mutable between runs; each run works on its own snapshot
        self.config = config
        self.progress_sink = progress_sink

        self._state = SessionState.IDLE
        self._results: List[FrameResult] = []
        self._mask: Optional[np.ndarray] = None
        self._cancelled = False
        self._failure_reason: Optional[str] = None
        self._failure_error: Optional[Exception] = None
        self._skipped_frames = 0
        self._reads = []

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def results(self) -> Tuple[FrameResult, ...]:
        return tuple(self._results)

    @property
    def mask(self) -> Optional[np.ndarray]:
        return self._mask

    @property
    def failure_reason(self) -> Optional[str]:
        return self._failure_reason

    @property
    def failure_error(self) -> Optional[Exception]:
        """Typed cause of a FAILED session: MaskConstructionError, FrameAcquisitionError or SourceExhaustionBeforeStart"""
        return self._failure_error

    @property
    def skipped_frames(self) -> int:
        return self._skipped_frames

    @property
    def error_frames(self) -> int:
        return sum(1 for r in self._results if r.is_error)

    def statistics(self) -> Statistics:
        return summarize(self._results)

    def cancel(self):
        """Request cooperative cancellation; takes effect before the next frame, or at once if run() has not started yet."""
        if self._state is SessionState.RUNNING:
            logger.warning("Cancellation requested, stopping after the current frame")
        self._cancelled = True

    def check_cancelled(self) -> bool:
        return self._cancelled

    def reset(self):
        """Clear results, mask and state back to IDLE."""
        if self._state is SessionState.RUNNING:
            raise SessionStateError("Cannot reset a session while an analysis is running")
        self._state = SessionState.IDLE
        self._results = []
        self._mask = None
        self._cancelled = False
        self._failure_reason = None
        self._failure_error = None
        self._skipped_frames = 0

    def _fail(self, reason: str, error: Exception = None):
        self._failure_reason = reason
        self._failure_error = error
        self._state = SessionState.FAILED
        logger.error(f"Analysis failed: {reason}")

    def _read(self, source: FrameSource, reader: Optional[ThreadPoolExecutor],
              timeout: Optional[float]) -> Optional[Frame]:
        if reader is None:
            return source.read_frame()
        future = reader.submit(source.read_frame)
        self._reads = [f for f in self._reads if not f.done()] + [future]
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError:
            raise FrameSourceTimeout(f"No frame within {timeout:.1f}s")

    def _notify(self, estimated_total: int, result: FrameResult):
        if self.progress_sink is None:
            return
        try:
            self.progress_sink.on_progress(result.frame_index, estimated_total, result)
        except Exception as e:
            logger.warning(f"Progress sink raised {type(e).__name__}: {e}")

    def _close_source(self, frame_source: FrameSource):
        try:
            frame_source.close()
        except Exception as e:
            logger.warning(f"Error closing frame source: {e}")

    def _release_source(self, frame_source: FrameSource, timeout: Optional[float]):
        """Close the source once no read is running on it."""
        in_flight = [f for f in self._reads if not f.done()]
        if in_flight:
            futures_wait(in_flight, timeout=timeout)
            in_flight = [f for f in in_flight if not f.done()]
        self._reads = []

        if in_flight:
            # The reader has a single thread, so at most one read is still running
            logger.warning("A timed-out frame read is still running, the source closes when it returns")
            in_flight[-1].add_done_callback(lambda _future: self._close_source(frame_source))
            return
        self._close_source(frame_source)

    def run(self, frame_source: FrameSource) -> SessionState:
        """
        Analyze every frame the source yields.

        Args:
            frame_source: Source of sampled frames in temporal order

        Returns:
            SessionState: COMPLETED, CANCELLED or FAILED

        Raises:
            SessionStateError: if the session is not IDLE
            ConfigurationError: if the configuration is invalid; the session stays IDLE
        """
        if self._state is SessionState.RUNNING:
            raise SessionStateError("An analysis is already running in this session")
        if self._state is not SessionState.IDLE:
            raise SessionStateError(f"Session is {self._state.value}, call reset() before starting again")

        validate_config(self.config)
        config = copy.deepcopy(self.config)

        self._state = SessionState.RUNNING
        self._reads = []
        logger.info(f"Phase analysis started (contour threshold {config.thresholds.contour_threshold}, "
                    f"variance threshold {config.thresholds.variance_threshold}, "
                    f"stride {config.thresholds.sampling_stride}, method {config.texture.method})")

        timeout = config.session.frame_timeout_seconds
        reader = ThreadPoolExecutor(max_workers=1, thread_name_prefix="frame-reader") if timeout else None
        try:
            self._run_frames(frame_source, config, reader, timeout)
        except Exception as e:
            logger.exception(f"Unexpected error during analysis: {e}")
            self._fail(f"unexpected error: {type(e).__name__}: {e}", e)
        finally:
            if reader is not None:
                reader.shutdown(wait=False, cancel_futures=True)
            self._release_source(frame_source, timeout)

        self._log_outcome()
        return self._state

    def _run_frames(self, frame_source: FrameSource, config: AnalysisConfig,
                    reader: Optional[ThreadPoolExecutor], timeout: Optional[float]):
        if self.check_cancelled():
            logger.warning("Analysis cancelled before the first frame")
            self._state = SessionState.CANCELLED
            return

        try:
            frame_source.open()
        except Exception as e:
            self._fail(f"frame acquisition failed: {e}", FrameAcquisitionError(str(e)))
            return

        frames_seen = 0
        consecutive_timeouts = 0

        while True:
            if self.check_cancelled():
                self._state = SessionState.CANCELLED
                return

            try:
                frame = self._read(frame_source, reader, timeout)
            except FrameSourceTimeout as e:
                self._skipped_frames += 1
                consecutive_timeouts += 1
                logger.warning(f"Frame skipped: {e}")
                if consecutive_timeouts >= config.session.max_consecutive_timeouts:
                    reason = f"{consecutive_timeouts} consecutive reads timed out"
                    self._fail(f"frame acquisition failed: {reason}", FrameAcquisitionError(reason))
                    return
                continue
            except Exception as e:
                self._fail(f"frame acquisition failed: {e}", FrameAcquisitionError(str(e)))
                return
            consecutive_timeouts = 0

            if frame is None:
                if frames_seen == 0:
                    self._fail("source exhausted before first frame",
                               SourceExhaustionBeforeStart("Frame source yielded no frames"))
                else:
                    self._state = SessionState.COMPLETED
                return
            frames_seen += 1

            if self._mask is None:
                try:
                    self._mask = build_mask(frame, config.mask)
                except MaskConstructionError as e:
                    self._fail(f"mask construction failed: {e}", e)
                    return

            try:
                result = analyze_frame(frame, self._mask, config)
            except FrameProcessingError as e:
                logger.error(f"Frame {frame.index} recorded as ERROR: {e}")
                result = FrameResult.error_result(frame.index, frame.timestamp, str(e))

            self._results.append(result)

            estimated_total = max(getattr(frame_source, 'estimated_total', 0) or 0, frames_seen)
            logger.debug(f"Frame {result.frame_index} @ {result.timestamp_seconds:.2f}s: "
                         f"{result.num_contours} contours ({result.phase_by_contour.value}), "
                         f"variance {result.variance:.2f} ({result.phase_by_variance.value})")
            if frames_seen % config.session.log_every_n_frames == 0:
                logger.info(f"Processed {frames_seen}/{estimated_total} frames")
            self._notify(estimated_total, result)

    def _log_outcome(self):
        stats = self.statistics()
        if self._state is SessionState.FAILED:
            return
        logger.info(f"Phase analysis {self._state.value}: {stats.total_frames} frames, "
                    f"{stats.cholesteric_fraction * 100:.1f}% cholesteric, "
                    f"{stats.isotropic_fraction * 100:.1f}% isotropic, "
                    f"{stats.error_frames} error frame(s), {self._skipped_frames} skipped\n")


def analyze_video(video_path, config: AnalysisConfig = None,
                  progress_sink: ProgressSink = None) -> AnalysisSession:
    """
    Analyze a video file synchronously.

    Args:
        video_path: Path to the video
        config: Analysis configuration, the user's last used config when omitted
        progress_sink: Optional per-frame progress receiver

    Returns:
        AnalysisSession: the finished session (check .state and .failure_reason)

    Raises:
        ConfigurationError: if the configuration is invalid, before the video is touched
    """
    session = AnalysisSession(config=config, progress_sink=progress_sink)
    validate_config(session.config)
    source = VideoFileFrameSource(video_path, sampling_stride=session.config.thresholds.sampling_stride)
    session.run(source)
    return session
