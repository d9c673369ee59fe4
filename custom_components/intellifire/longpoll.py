"""Relay long-poll loop for IntelliFire fireplaces.

The relay pushes state changes by holding a GET open until something
changes. Each request runs as a background task and posts its outcome
into a queue; a single consumer per fireplace decides what to issue next.
Every message carries the loop generation that issued it, so results
from a loop that has since been stopped or restarted are dropped instead
of spawning a second request chain.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

from homeassistant.core import callback
from homeassistant.helpers.event import async_call_later, async_track_time_interval

from . import api
from .const import (
    LONG_POLL_LIVENESS_INTERVAL,
    LONG_POLL_LIVENESS_THRESHOLD,
    LONG_POLL_MIN_SPACING,
)
from .models import (
    LongPollOutcome,
    LongPollResult,
    PollMessage,
    PollState,
    Snapshot,
)

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    import httpx
    from homeassistant.core import HomeAssistant

    from .session import IntelliFireSessionManager

_LOGGER = logging.getLogger(__name__)


class StaleGenerationError(Exception):
    """Raised when a poll message belongs to a superseded loop generation."""


class IntelliFireCloudPollLoop:
    """Keeps one fireplace's state current through the relay.

    IDLE -> POLLING: a full snapshot poll is issued.
    POLLING -> LONG_POLLING: after a snapshot, long-polls follow.
    LONG_POLLING -> LONG_POLLING: a change is followed immediately by the
    next long-poll, a relay timeout by one spaced at least a minute
    after the previous request.
    LONG_POLLING -> POLLING: a dropped or failed long-poll restarts from
    a full poll with the same spacing.
    Stopping the loop returns it to IDLE.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        session: httpx.AsyncClient,
        session_manager: IntelliFireSessionManager,
        serial: str,
    ) -> None:
        """Initialize the poll loop.

        Args:
            hass: Home Assistant instance.
            session: HTTP client used for relay polls. It must not retry on
                its own; a retried long-poll would hold the loop for minutes.
            session_manager: Account session providing the cookies.
            serial: Fireplace serial.

        """
        self._hass = hass
        self._session = session
        self._session_manager = session_manager
        self.serial = serial

        self.state = PollState.IDLE
        self.generation = 0
        self.etag: str | None = None
        self.last_success: float | None = None
        self.last_issued: float | None = None

        self._queue: asyncio.Queue[PollMessage] = asyncio.Queue()
        self._consumer_task: asyncio.Task[None] | None = None
        self._cancel_reissue: Callable[[], None] | None = None
        self._cancel_liveness: Callable[[], None] | None = None
        self._snapshot_callbacks: list[Callable[[Snapshot], None]] = []

    def register_snapshot_callback(
        self,
        callback: Callable[[Snapshot], None],
    ) -> Callable[[], None]:
        """Register a callback for snapshots received from the relay.

        Args:
            callback: Function to call with each snapshot.

        Returns:
            A function to unregister the callback.

        """
        self._snapshot_callbacks.append(callback)

        def unregister() -> None:
            if callback in self._snapshot_callbacks:
                self._snapshot_callbacks.remove(callback)

        return unregister

    def start(self) -> None:
        """Start (or restart) the loop from a full poll."""
        if self._consumer_task is None or self._consumer_task.done():
            self._consumer_task = self._hass.async_create_background_task(
                self._async_consume(), f"intellifire_longpoll_{self.serial}"
            )
        if self._cancel_liveness is None:
            self._cancel_liveness = async_track_time_interval(
                self._hass, self._async_check_liveness, LONG_POLL_LIVENESS_INTERVAL
            )
        self.last_success = self._hass.loop.time()
        self._restart()

    def _restart(self) -> None:
        self._advance_generation()
        self.state = PollState.POLLING
        _LOGGER.debug(
            "Starting relay polling for %s (generation %d)", self.serial, self.generation
        )
        self._issue(full_poll=True)

    async def async_stop(self) -> None:
        """Stop the loop; in-flight requests are abandoned."""
        self._advance_generation()
        self.state = PollState.IDLE
        if self._cancel_liveness is not None:
            self._cancel_liveness()
            self._cancel_liveness = None
        if self._consumer_task is not None:
            self._consumer_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._consumer_task
            self._consumer_task = None
        _LOGGER.debug("Stopped relay polling for %s", self.serial)

    def halt(self) -> None:
        """Go IDLE without tearing down the consumer, e.g. after logout."""
        self._advance_generation()
        self.state = PollState.IDLE
        _LOGGER.info("Relay polling halted for %s", self.serial)

    def _advance_generation(self) -> None:
        self.generation += 1
        if self._cancel_reissue is not None:
            self._cancel_reissue()
            self._cancel_reissue = None

    def _issue(self, *, full_poll: bool) -> None:
        """Issue a request tagged with the current generation."""
        self.last_issued = self._hass.loop.time()
        self._hass.async_create_background_task(
            self._async_request(self.generation, full_poll=full_poll),
            f"intellifire_poll_{self.serial}",
        )

    def _issue_after_spacing(self, *, full_poll: bool) -> None:
        """Issue the next request no sooner than the minimum spacing allows."""
        elapsed = self._hass.loop.time() - (self.last_issued or 0)
        delay = max(0.0, LONG_POLL_MIN_SPACING - elapsed)
        if delay == 0:
            self._issue(full_poll=full_poll)
            return

        generation = self.generation

        @callback
        def _reissue(_now: datetime) -> None:
            self._cancel_reissue = None
            if generation != self.generation:
                return
            self._issue(full_poll=full_poll)

        _LOGGER.debug("Next relay request for %s in %.0fs", self.serial, delay)
        self._cancel_reissue = async_call_later(self._hass, delay, _reissue)

    async def _async_request(self, generation: int, *, full_poll: bool) -> None:
        """Perform one relay request and queue its outcome."""
        result = await self._async_fetch(full_poll=full_poll)
        await self._queue.put(
            PollMessage(generation=generation, result=result, full_poll=full_poll)
        )

    async def _async_fetch(self, *, full_poll: bool) -> LongPollResult:
        observed = self._session_manager.generation
        cookie_header = self._session_manager.cookie_header()
        try:
            if not cookie_header:
                error_msg = "No relay session"
                raise api.IntelliFireAuthError(error_msg)  # noqa: TRY301
            if full_poll:
                snapshot = await api.async_poll(self._session, self.serial, cookie_header)
                return LongPollResult(LongPollOutcome.CHANGED, snapshot=snapshot)
            return await api.async_long_poll(
                self._session, self.serial, cookie_header, self.etag
            )
        except api.IntelliFireAuthError:
            _LOGGER.info("Relay rejected session while polling %s", self.serial)
            await self._session_manager.async_refresh_credentials(observed)
        except api.IntelliFireApiClientError as err:
            _LOGGER.warning("Relay poll for %s failed: %s", self.serial, err)
        except Exception:
            _LOGGER.exception("Unexpected error polling %s", self.serial)
        return LongPollResult(LongPollOutcome.ERROR)

    async def _async_consume(self) -> None:
        """Handle poll messages one at a time."""
        while True:
            message = await self._queue.get()
            try:
                self._handle_message(message)
            except StaleGenerationError:
                _LOGGER.debug(
                    "Discarding %s from generation %d for %s (current %d)",
                    message.result.outcome,
                    message.generation,
                    self.serial,
                    self.generation,
                )
            except Exception:
                _LOGGER.exception("Error handling poll result for %s", self.serial)
            finally:
                self._queue.task_done()

    def _handle_message(self, message: PollMessage) -> None:
        """Apply one poll outcome and issue the follow-up request.

        Raises:
            StaleGenerationError: If the message belongs to a previous loop.

        """
        if message.generation != self.generation or self.state is PollState.IDLE:
            raise StaleGenerationError

        result = message.result
        outcome = result.outcome

        if outcome is LongPollOutcome.CHANGED:
            self.last_success = self._hass.loop.time()
            if result.etag:
                self.etag = result.etag
            self.state = PollState.LONG_POLLING
            if result.snapshot is not None:
                self._dispatch(result.snapshot)
            # A consumer may have stopped the loop while handling the snapshot
            if message.generation == self.generation:
                self._issue(full_poll=False)
            return

        if outcome is LongPollOutcome.TIMEOUT:
            self.last_success = self._hass.loop.time()
            self.etag = result.etag
            _LOGGER.debug("Long poll for %s timed out without change", self.serial)
            self._issue_after_spacing(full_poll=False)
            return

        if outcome is LongPollOutcome.DROPPED:
            _LOGGER.warning(
                "Long poll for %s was dropped by the network, restarting", self.serial
            )
        self.state = PollState.POLLING
        self._issue_after_spacing(full_poll=True)

    def _dispatch(self, snapshot: Snapshot) -> None:
        for snapshot_callback in list(self._snapshot_callbacks):
            try:
                snapshot_callback(snapshot)
            except Exception:
                _LOGGER.exception("Error in snapshot callback for %s", self.serial)

    async def _async_check_liveness(self, _now: datetime) -> None:
        """Restart the loop when no relay answer has arrived for too long."""
        if self.state is PollState.IDLE or self.last_success is None:
            return
        silent_for = self._hass.loop.time() - self.last_success
        if silent_for <= LONG_POLL_LIVENESS_THRESHOLD:
            return
        _LOGGER.warning(
            "No relay response for %s in %.0fs, restarting polling",
            self.serial,
            silent_for,
        )
        self.last_success = self._hass.loop.time()
        self._restart()
