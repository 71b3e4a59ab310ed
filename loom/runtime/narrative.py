"""
Narrative step routing for scrollytelling sections.

The step controller announces the active story step on a page-wide
``story:step`` stream. NarrativeBridge subscribes to that stream, reads the
step element's ``data-update`` JSON and hands each entry to the ``update``
of the instance it names:

    <div class="story-step" data-step="1"
         data-update='{"city-map": {"lat": 48.858, "lng": 2.295, "zoom": 14}}'>

StoryStepper is an offline step controller: it walks the steps of a
``.story-section`` and dispatches the same notifications the browser-side
controller would, which lets a page's per-step states be replayed.
"""

import asyncio
import inspect
import json
import logging
from typing import Any, Iterator

from bs4 import Tag
from pydantic import ValidationError

from loom.exceptions import AdapterOperationError, UpdatePayloadParseError
from loom.runtime.base import InstanceRecord, StepDetail, StepNotification
from loom.runtime.context import RuntimeContext
from loom.runtime.page import Page

logger = logging.getLogger(__name__)


def coerce_notification(payload: Any) -> StepNotification | None:
    """Accept a StepNotification or a plain ``{element, index, step, direction}`` dict."""
    if isinstance(payload, StepNotification):
        return payload
    if not isinstance(payload, dict):
        return None

    index = payload.get("index", 0)
    try:
        detail = StepDetail(
            index=index,
            step=str(payload.get("step", index)),
            direction=payload.get("direction", "down"),
        )
    except ValidationError:
        return None
    return StepNotification(element=payload.get("element"), detail=detail)


# =============================================================================
# BRIDGE
# =============================================================================


class NarrativeBridge:
    """Route step update payloads to mounted instances."""

    def __init__(self, context: RuntimeContext) -> None:
        self.context = context
        self._wired = False
        self._pending: set[asyncio.Future] = set()

    @property
    def wired(self) -> bool:
        return self._wired

    @property
    def pending(self) -> int:
        return len(self._pending)

    def wire(self) -> None:
        """Subscribe to the page's step stream (once)."""
        if self._wired:
            return
        self.context.page.add_listener(self.context.settings.step_event, self.handle_step)
        self._wired = True

    def handle_step(self, payload: Any) -> int:
        """Apply the update mapping carried by the active step.

        Instances mounted inside the section's ``.story-graphic`` that define
        ``on_step(notification)`` are notified first, then the ``data-update``
        mapping is routed.

        Returns:
            Number of update calls issued
        """
        notification = coerce_notification(payload)
        if notification is None or notification.element is None:
            return 0

        self._notify_section(notification)

        updates = self._read_updates(notification)
        if updates is None:
            return 0

        issued = 0
        for instance_id, data in updates.items():
            record = self.context.instances.get(instance_id)
            if record is None or not record.updatable:
                continue
            if self._apply(record, data):
                issued += 1
        return issued

    async def drain(self) -> None:
        """Wait for asynchronous updates that are still running."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _notify_section(self, notification: StepNotification) -> None:
        section = notification.element.find_parent(class_="story-section")
        graphic = section.select_one(".story-graphic") if section is not None else None
        if graphic is None:
            return

        for record in list(self.context.instances):
            on_step = getattr(record.instance, "on_step", None)
            if not callable(on_step):
                continue
            # Identity check: Tag equality is structural
            if not any(parent is graphic for parent in record.element.parents):
                continue
            try:
                result = on_step(notification)
            except Exception as e:
                self._fail(record, e)
                continue
            if inspect.isawaitable(result):
                self._schedule(record, result)

    def _read_updates(self, notification: StepNotification) -> dict[str, Any] | None:
        raw = notification.element.get(self.context.settings.update_attribute)
        if raw is None:
            return None

        try:
            updates = json.loads(raw)
        except json.JSONDecodeError as e:
            self._drop(notification, raw, f"Malformed update JSON: {e}")
            return None

        if not isinstance(updates, dict):
            self._drop(notification, raw, "Update payload is not a JSON object")
            return None
        return updates

    def _drop(self, notification: StepNotification, raw: str, reason: str) -> None:
        error = UpdatePayloadParseError(reason, step=notification.step, raw_payload=raw)
        self.context.record_failure(error)
        logger.debug(f"Dropped step {notification.step}: {reason}")

    def _apply(self, record: InstanceRecord, data: Any) -> bool:
        try:
            result = record.descriptor.update(record.element, data, record.instance)
        except Exception as e:
            self._fail(record, e)
            return False

        if inspect.isawaitable(result):
            self._schedule(record, result)
        return True

    def _schedule(self, record: InstanceRecord, awaitable: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            self._fail(record, RuntimeError("asynchronous update issued outside an event loop"))
            return

        future = asyncio.ensure_future(awaitable, loop=loop)
        self._pending.add(future)

        def _done(fut: asyncio.Future) -> None:
            self._pending.discard(fut)
            if not fut.cancelled() and fut.exception() is not None:
                self._fail(record, fut.exception())

        future.add_done_callback(_done)

    def _fail(self, record: InstanceRecord, exc: BaseException) -> None:
        error = AdapterOperationError(
            f"update failed for {record.identity}: {exc}",
            descriptor_id=record.descriptor.id,
            operation="update",
            element_id=record.identity,
        )
        self.context.record_failure(error)
        logger.debug(error.message, exc_info=exc)


# =============================================================================
# OFFLINE STEP CONTROLLER
# =============================================================================


class StoryStepper:
    """Dispatch step notifications for one ``.story-section``.

    Expected markup:

        <section class="story-section">
          <div class="story-sticky"><div class="story-graphic">…</div></div>
          <div class="story-steps">
            <div class="story-step" data-step="0">…</div>
            <div class="story-step" data-step="1">…</div>
          </div>
        </section>
    """

    def __init__(
        self,
        page: Page,
        section: Tag,
        *,
        section_index: int = 0,
        event: str = "story:step",
    ) -> None:
        self.page = page
        self.section = section
        self.event = event
        self.graphic = section.select_one(".story-graphic")
        self.steps: list[Tag] = list(section.select(".story-step"))
        self.current: int | None = None

        if not section.get("id"):
            section["id"] = f"story-{section_index}"
        if self.graphic is not None:
            self.graphic["aria-live"] = "polite"
        for i, step in enumerate(self.steps):
            if not step.get("id"):
                step["id"] = f"{section['id']}-step-{i}"
            step["aria-label"] = f"Step {i + 1} of {len(self.steps)}"

    @classmethod
    def for_page(cls, page: Page, *, event: str = "story:step") -> list["StoryStepper"]:
        """Steppers for every section that has a graphic and at least one step."""
        steppers = []
        for i, section in enumerate(page.select(".story-section")):
            if section.select_one(".story-graphic") is None:
                continue
            if not section.select(".story-step"):
                continue
            steppers.append(cls(page, section, section_index=i, event=event))
        return steppers

    def enter(self, index: int, direction: str | None = None) -> StepNotification:
        """Activate step ``index`` and dispatch its notification."""
        if direction is None:
            direction = "up" if self.current is not None and index < self.current else "down"

        element = self.steps[index]
        for step in self.steps:
            if step.has_attr("data-active"):
                del step["data-active"]
            step["aria-hidden"] = "true"
        element["data-active"] = ""
        del element["aria-hidden"]

        notification = StepNotification(
            element=element,
            detail=StepDetail(
                index=index,
                step=element.get("data-step", str(index)),
                direction=direction,
            ),
        )
        self.current = index
        self.page.dispatch(self.event, notification)
        return notification

    def exit(self, index: int) -> None:
        element = self.steps[index]
        if element.has_attr("data-active"):
            del element["data-active"]
        element["aria-hidden"] = "true"

    def replay(self) -> Iterator[StepNotification]:
        """Enter every step in document order."""
        for i in range(len(self.steps)):
            yield self.enter(i)
