"""Client-side orchestration of conversations, threads and live events."""
from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable, Coroutine, Iterable
from typing import Any, Protocol

from messaging_service.client.api import MessagingApiError, MessagingClient
from messaging_service.client.state import (
    ClientMessage,
    ConversationEntry,
    DeliveryStatus,
    ThreadState,
    ThreadStatus,
)

logger = logging.getLogger(__name__)


class TypingSender(Protocol):
    async def send_typing(self, to: str, typing: bool) -> bool: ...


class MessageController:
    """Local view of one user's messaging state.

    Every network call may fail or be overtaken by a newer one. Results for
    a view the user has since left are dropped, never applied. Unread
    counters are a cache: the server's conversation list always wins.
    """

    def __init__(
        self,
        api: MessagingClient,
        me: str,
        *,
        typing_timeout: float = 3.0,
        typing_stop_delay: float = 0.8,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self._api = api
        self.me = me
        self._typing_timeout = typing_timeout
        self._typing_stop_delay = typing_stop_delay
        self._on_change = on_change
        self._realtime: TypingSender | None = None

        self.conversations: list[ConversationEntry] = []
        self.threads: dict[str, ThreadState] = {}
        self.selected: str | None = None
        self.typing: dict[str, bool] = {}

        self._conv_generation = 0
        self._conv_in_flight = 0
        self._typing_timers: dict[str, asyncio.TimerHandle] = {}
        self._composing_to: str | None = None
        self._stop_typing_handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

    def attach(self, realtime: TypingSender) -> None:
        self._realtime = realtime

    async def start(self) -> None:
        await self.reconcile()

    async def reconcile(self) -> None:
        """Replace local counters with the server's view, reloading the open thread."""
        await self.refresh_conversations()
        if self.selected is not None:
            await self.open_thread(self.selected)

    async def aclose(self) -> None:
        self._clear_typing()
        if self._stop_typing_handle is not None:
            self._stop_typing_handle.cancel()
            self._stop_typing_handle = None
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)

    # -- conversations -------------------------------------------------

    async def refresh_conversations(self) -> bool:
        """Returns False if the fetch failed or a newer refresh or live event overtook it."""
        self._conv_generation += 1
        generation = self._conv_generation
        self._conv_in_flight += 1
        try:
            entries = await self._api.list_conversations()
        except MessagingApiError as exc:
            logger.warning("Conversation refresh failed: %s", exc)
            return False
        finally:
            self._conv_in_flight -= 1
        if generation != self._conv_generation:
            logger.debug("Discarding superseded conversation list")
            return False
        self.conversations = entries
        self._notify()
        return True

    def entry_for(self, correspondent_id: str) -> ConversationEntry | None:
        for entry in self.conversations:
            if entry.correspondent_id == correspondent_id:
                return entry
        return None

    @property
    def total_unread(self) -> int:
        return sum(entry.unread_count for entry in self.conversations)

    def _touch_conversations(self) -> None:
        # A local edit outranks any list requested before it.
        self._conv_generation += 1
        if self._conv_in_flight:
            self._spawn(self.refresh_conversations())

    def _bump_conversation(self, correspondent_id: str, msg: ClientMessage) -> ConversationEntry | None:
        entry = self.entry_for(correspondent_id)
        if entry is None:
            # Unknown correspondent: the server has the profile.
            self._spawn(self.refresh_conversations())
            return None
        entry.last_message = msg
        self.conversations.remove(entry)
        self.conversations.insert(0, entry)
        self._touch_conversations()
        return entry

    # -- threads -------------------------------------------------------

    async def open_thread(self, correspondent_id: str) -> ThreadState:
        if self.selected is not None and self.selected != correspondent_id:
            self._leave_thread(self.selected)
        self.selected = correspondent_id

        thread = self.threads.setdefault(correspondent_id, ThreadState(correspondent_id))
        thread.generation += 1
        generation = thread.generation
        thread.status = ThreadStatus.LOADING
        self._notify()

        try:
            messages = await self._api.fetch_thread(correspondent_id)
        except MessagingApiError as exc:
            logger.warning("Loading thread with %s failed: %s", correspondent_id, exc)
            if self._is_current(thread, generation):
                thread.status = ThreadStatus.STALE
                thread.error = str(exc)
                self._notify()
            return thread

        if not self._is_current(thread, generation):
            logger.debug("Discarding superseded thread load for %s", correspondent_id)
            return thread

        thread.load(messages)
        thread.status = ThreadStatus.LOADED
        self._notify()
        await self._acknowledge(correspondent_id)
        return thread

    async def load_older(self, correspondent_id: str, limit: int = 50) -> list[ClientMessage]:
        thread = self.threads.get(correspondent_id)
        if thread is None or thread.status != ThreadStatus.LOADED:
            return []
        oldest = thread.oldest_id
        if oldest is None:
            return []

        generation = thread.generation
        try:
            older = await self._api.fetch_thread(correspondent_id, before=oldest, limit=limit)
        except MessagingApiError as exc:
            logger.warning("Loading older messages with %s failed: %s", correspondent_id, exc)
            return []
        if generation != thread.generation:
            return []
        if thread.prepend(older):
            self._notify()
        return older

    def _is_current(self, thread: ThreadState, generation: int) -> bool:
        return thread.generation == generation and self.selected == thread.correspondent_id

    def _leave_thread(self, correspondent_id: str) -> None:
        self._stop_typing_now()
        self._clear_typing()
        thread = self.threads.get(correspondent_id)
        if thread is not None and thread.status == ThreadStatus.LOADING:
            thread.status = ThreadStatus.STALE

    async def _acknowledge(self, correspondent_id: str) -> None:
        # Opening a thread is the only thing that marks messages read.
        try:
            await self._api.mark_read(correspondent_id)
        except MessagingApiError as exc:
            logger.warning("Mark-read for %s failed: %s", correspondent_id, exc)
            return
        thread = self.threads.get(correspondent_id)
        if thread is not None:
            thread.mark_sent_read(correspondent_id)
        entry = self.entry_for(correspondent_id)
        if entry is not None:
            entry.unread_count = 0
        await self.refresh_conversations()

    # -- sending -------------------------------------------------------

    async def send(
        self,
        text: str | None = None,
        media_url: str | None = None,
        post_id: str | None = None,
        *,
        to: str | None = None,
    ) -> ClientMessage:
        recipient = to or self.selected
        if recipient is None:
            raise ValueError("No conversation selected")
        if recipient == self._composing_to:
            self._stop_typing_now()

        client_msg_id = str(uuid.uuid4())
        pending = ClientMessage.pending(
            self.me, recipient, client_msg_id,
            text=text, media_url=media_url, post_id=post_id,
        )
        thread = self.threads.setdefault(recipient, ThreadState(recipient))
        thread.merge(pending)
        self._notify()

        try:
            echo = await self._api.send_message(
                recipient,
                text=text,
                media_url=media_url,
                post_id=post_id,
                client_msg_id=client_msg_id,
            )
        except MessagingApiError:
            pending.status = DeliveryStatus.FAILED
            self._notify()
            raise

        thread.merge(echo)
        self._bump_conversation(recipient, echo)
        self._notify()
        return echo

    async def share_post(
        self,
        post_id: str,
        recipients: Iterable[str],
        caption: str | None = None,
    ) -> dict[str, ClientMessage | MessagingApiError]:
        """Send one post to several correspondents at once. Failures are returned, not raised."""
        targets = [r for r in dict.fromkeys(recipients) if r and r != self.me]

        async def _share(recipient: str) -> tuple[str, ClientMessage | MessagingApiError]:
            try:
                msg = await self._api.send_message(
                    recipient,
                    text=caption,
                    post_id=post_id,
                    client_msg_id=str(uuid.uuid4()),
                )
            except MessagingApiError as exc:
                logger.warning("Sharing post %s with %s failed: %s", post_id, recipient, exc)
                return recipient, exc
            return recipient, msg

        results = dict(await asyncio.gather(*(_share(r) for r in targets)))
        for recipient, outcome in results.items():
            if isinstance(outcome, ClientMessage):
                thread = self.threads.get(recipient)
                if thread is not None:
                    thread.merge(outcome)
                self._bump_conversation(recipient, outcome)
        self._notify()
        return results

    # -- live events ---------------------------------------------------

    def handle_event(self, kind: str, data: dict[str, Any]) -> None:
        if kind == "message:new":
            self._on_message_new(ClientMessage.from_wire(data))
        elif kind == "typing":
            if data.get("to") == self.me and data.get("from"):
                self._set_typing(data["from"], bool(data.get("typing")))
        elif kind == "message:read":
            self._on_messages_read(data.get("from"))
        else:
            logger.debug("Ignoring event %s", kind)
            return
        self._notify()

    def _on_message_new(self, msg: ClientMessage) -> None:
        correspondent = msg.correspondent_of(self.me)
        thread = self.threads.get(correspondent)
        if thread is not None:
            thread.merge(msg)

        entry = self._bump_conversation(correspondent, msg)
        if msg.sender_id != correspondent:
            return

        self._set_typing(correspondent, False)
        if (
            self.selected == correspondent
            and thread is not None
            and thread.status == ThreadStatus.LOADED
        ):
            self._spawn(self._acknowledge(correspondent))
        elif entry is not None:
            entry.unread_count += 1

    def _on_messages_read(self, reader_id: str | None) -> None:
        if not reader_id:
            return
        thread = self.threads.get(reader_id)
        if thread is not None:
            thread.mark_sent_read(self.me)
        entry = self.entry_for(reader_id)
        if entry is not None and entry.last_message.sender_id == self.me:
            entry.last_message.read = True
        self._spawn(self.refresh_conversations())

    # -- typing indicator ----------------------------------------------

    def _set_typing(self, user_id: str, typing: bool) -> None:
        handle = self._typing_timers.pop(user_id, None)
        if handle is not None:
            handle.cancel()
        if not typing:
            self.typing.pop(user_id, None)
            return
        self.typing[user_id] = True
        loop = asyncio.get_running_loop()
        self._typing_timers[user_id] = loop.call_later(
            self._typing_timeout, self._expire_typing, user_id,
        )

    def _expire_typing(self, user_id: str) -> None:
        self._typing_timers.pop(user_id, None)
        if self.typing.pop(user_id, None):
            self._notify()

    def _clear_typing(self) -> None:
        for handle in self._typing_timers.values():
            handle.cancel()
        self._typing_timers.clear()
        self.typing.clear()

    def notify_composing(self) -> None:
        """Call on every keystroke in the open thread's composer."""
        to = self.selected
        if to is None or self._realtime is None:
            return
        if self._composing_to != to:
            self._stop_typing_now()
            self._composing_to = to
            self._spawn(self._realtime.send_typing(to, True))
        if self._stop_typing_handle is not None:
            self._stop_typing_handle.cancel()
        self._stop_typing_handle = asyncio.get_running_loop().call_later(
            self._typing_stop_delay, self._stop_typing_now,
        )

    def _stop_typing_now(self) -> None:
        if self._stop_typing_handle is not None:
            self._stop_typing_handle.cancel()
            self._stop_typing_handle = None
        to = self._composing_to
        if to is None:
            return
        self._composing_to = None
        if self._realtime is not None:
            self._spawn(self._realtime.send_typing(to, False))

    # -- plumbing ------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background task failed", exc_info=exc)

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change()
