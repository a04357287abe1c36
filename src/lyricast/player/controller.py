"""Playback controller - owns the queue state machine for one display.

Feeds player and track events into ``transition`` and carries out the
effects: debounced queue fetches, fire-and-forget outcome reports, and
callbacks to whatever drives the actual video player and UI.

Every fetch carries the token of the track it was issued for. Results for
an older token are dropped by the state machine, so a slow response for a
previous track can never overwrite the current queue.
"""

import logging
import threading

from lyricast.models import OutcomeReport
from lyricast.player.api_client import LyricastAPIError, LyricastClient
from lyricast.player.state import (
    EmitProgress,
    LoadVideo,
    NotifyError,
    PlaybackEnded,
    PlaybackFailed,
    PlaybackStarted,
    PlaybackState,
    QueueFailed,
    QueueLoaded,
    Refetch,
    ReplayVideo,
    ReportOutcome,
    ScheduleFetch,
    SetStatus,
    SkipRequested,
    TrackChanged,
    transition,
)

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE = 1.0  # seconds


def _start_timer(delay: float, fn) -> threading.Timer:
    timer = threading.Timer(delay, fn)
    timer.daemon = True
    timer.start()
    return timer


def _run_in_thread(fn, *args):
    threading.Thread(target=fn, args=args, daemon=True, name="outcome-report").start()


def _noop(*args):
    pass


class PlaybackController:
    """Walks the candidate queue for the current track.

    Callbacks (all optional):
        on_status(status): "searching", "playing" or "error"
        on_progress(dict): {"current", "total", "isDiscoveryComplete"}
        on_error(reason): queue empty, exhausted, or fetch failed
        on_load_video(video_id): player should load this id
        on_replay(video_id): player should restart this id

    ``scheduler(delay, fn)`` must return an object with ``cancel()``;
    ``run_background(fn, *args)`` runs outcome reports off the caller's
    thread. Both default to threads and can be swapped in tests.
    """

    def __init__(
        self,
        client: LyricastClient,
        debounce: float = DEFAULT_DEBOUNCE,
        on_status=None,
        on_progress=None,
        on_error=None,
        on_load_video=None,
        on_replay=None,
        scheduler=None,
        run_background=None,
    ):
        self.client = client
        self.debounce = debounce
        self.on_status = on_status or _noop
        self.on_progress = on_progress or _noop
        self.on_error = on_error or _noop
        self.on_load_video = on_load_video or _noop
        self.on_replay = on_replay or _noop
        self._schedule = scheduler or _start_timer
        self._run_background = run_background or _run_in_thread
        self._state = PlaybackState()
        self._lock = threading.Lock()
        self._timer_lock = threading.Lock()
        self._pending_fetch = None

    @property
    def state(self) -> PlaybackState:
        return self._state

    # --- Inputs ---

    def set_track(self, artist: str, track: str, user_id: str | None = None):
        """Point the controller at a (possibly) new track.

        Repeated calls with the same identity are ignored, so callers can
        forward every now-playing poll.
        """
        s = self._state
        if (s.artist, s.track, s.user_id) == (artist, track, user_id) and s.token:
            return
        logger.info("Track changed: %s - %s", artist, track)
        self.dispatch(TrackChanged(artist, track, user_id))

    def refetch(self):
        self.dispatch(Refetch())

    def skip(self, trigger: int):
        self.dispatch(SkipRequested(trigger))

    def player_started(self, video_id: str):
        self.dispatch(PlaybackStarted(video_id))

    def player_error(self, video_id: str):
        logger.warning(
            "Video play error: %s (index %d/%d)",
            video_id, self._state.current_index, len(self._state.video_ids),
        )
        self.dispatch(PlaybackFailed(video_id))

    def player_ended(self, video_id: str):
        self.dispatch(PlaybackEnded(video_id))

    def dispatch(self, event) -> PlaybackState:
        """Apply an event atomically, then run its effects."""
        with self._lock:
            self._state, effects = transition(self._state, event)
            state = self._state
        for effect in effects:
            self._apply(effect)
        return state

    def close(self):
        """Cancel any pending fetch."""
        with self._timer_lock:
            if self._pending_fetch is not None:
                self._pending_fetch.cancel()
                self._pending_fetch = None

    # --- Effects ---

    def _apply(self, effect):
        if isinstance(effect, SetStatus):
            self.on_status(effect.status)
        elif isinstance(effect, EmitProgress):
            self.on_progress(effect.to_dict())
        elif isinstance(effect, NotifyError):
            self.on_error(effect.reason)
        elif isinstance(effect, LoadVideo):
            self.on_load_video(effect.video_id)
        elif isinstance(effect, ReplayVideo):
            self.on_replay(effect.video_id)
        elif isinstance(effect, ScheduleFetch):
            self._schedule_fetch(effect)
        elif isinstance(effect, ReportOutcome):
            self._run_background(self._report, effect.report)
        else:
            raise TypeError(f"Unknown playback effect: {effect!r}")

    def _schedule_fetch(self, effect: ScheduleFetch):
        with self._timer_lock:
            if self._pending_fetch is not None:
                self._pending_fetch.cancel()
            self._pending_fetch = self._schedule(self.debounce, lambda: self._fetch(effect))

    def _fetch(self, effect: ScheduleFetch):
        if effect.token != self._state.token:
            return  # superseded while waiting out the debounce
        try:
            response = self.client.get_queue(effect.artist, effect.track, effect.user_id)
        except LyricastAPIError as e:
            logger.error("Video fetch error for %s - %s: %s", effect.artist, effect.track, e)
            self.dispatch(QueueFailed(effect.token, str(e)))
            return
        logger.info(
            "Queue for %s - %s: %d candidates (preferred=%s, complete=%s)",
            effect.artist, effect.track, len(response.video_ids),
            response.preferred_video_id, response.is_discovery_complete,
        )
        self.dispatch(QueueLoaded(effect.token, response))

    def _report(self, report: OutcomeReport):
        try:
            self.client.report_outcome(report)
        except LyricastAPIError as e:
            # Playback keeps going whether or not the store heard about it
            logger.warning("Failed to report %s for %s: %s",
                           report.status or "success", report.video_id, e)
