"""Alert delivery and the capped alert log."""
import asyncio
import logging
from dataclasses import replace
from typing import Callable, List, Optional, Set
from signals.crossing import AlertEvent
from config import AlertConfig
from .relay import RelayNotifier
from .speech import Speaker
from .storage import AlertStorage

logger = logging.getLogger(__name__)


class AlertLog:
    """Most-recent-first alert history capped at ``max_entries``."""

    def __init__(self, max_entries: int = 200, storage: Optional[AlertStorage] = None):
        self.max_entries = max_entries
        self.storage = storage
        self._entries: List[AlertEvent] = []
        self._listeners: List[Callable[[AlertEvent], None]] = []
        if storage is not None:
            self._load()

    def _load(self):
        for data in self.storage.load_alerts():
            try:
                self._entries.append(AlertEvent.from_dict(data))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping stored alert: %s", e)
        del self._entries[self.max_entries:]

    def push(self, event: AlertEvent):
        """Insert at the front; the oldest entry is evicted past the cap."""
        self._entries.insert(0, event)
        del self._entries[self.max_entries:]
        if self.storage is not None:
            self.storage.save_all([e.to_dict() for e in self._entries])
        for listener in list(self._listeners):
            listener(event)

    def subscribe(self, listener: Callable[[AlertEvent], None]) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def clear(self):
        self._entries.clear()
        if self.storage is not None:
            self.storage.clear()

    @property
    def entries(self) -> List[AlertEvent]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class AlertManager:
    """
    Alert sink: relay delivery, speech, and the visible log.

    Blocking transports run in the default executor; the log is only
    touched from the event loop.
    """

    def __init__(
        self,
        config: AlertConfig,
        notifier: Optional[RelayNotifier] = None,
        speaker: Optional[Speaker] = None,
        log: Optional[AlertLog] = None
    ):
        self.config = config
        self.notifier = notifier or RelayNotifier(config)
        self.speaker = speaker or Speaker()
        if log is None:
            storage = AlertStorage(config.history_file, config.max_entries) if config.history_file else None
            log = AlertLog(config.max_entries, storage)
        self.log = log
        self._tasks: Set[asyncio.Task] = set()

    def submit(self, event: AlertEvent) -> asyncio.Task:
        """
        Deliver ``event`` in its own task.

        The task outlives the caller, so cancelling a chart's stream never
        loses an alert that is already on its way to the relay.
        """
        task = asyncio.get_running_loop().create_task(self.deliver(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self):
        """Wait for submitted deliveries to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def deliver(self, event: AlertEvent) -> AlertEvent:
        """
        Deliver one event and record it.

        The event is appended to the log whatever the delivery outcome, with
        ``delivered`` set from the relay response.
        """
        loop = asyncio.get_running_loop()
        try:
            delivered = await loop.run_in_executor(None, self.notifier.send_alert, event.message)
        except asyncio.CancelledError:
            logger.warning("Alert delivery interrupted: %s", event.message)
            self.log.push(replace(event, delivered=False))
            raise
        except Exception as e:
            logger.error("Alert delivery failed: %s", e)
            delivered = False

        recorded = replace(event, delivered=bool(delivered))
        self.log.push(recorded)
        if self.speaker.enabled:
            loop.run_in_executor(None, self.speaker.speak, recorded.message)
        logger.info("Alert %s: %s", "delivered" if recorded.delivered else "not delivered", recorded.message)
        return recorded
