"""Simulation engine.

Turns a SimulationConfiguration into a set of update groups (one per element
and schedule), resolves every attribute specification once, then runs each
group on its own asyncio task. A tick evaluates the group's attributes in a
worker thread (expressions may query the context broker) and delivers the
resulting update; ticks of one group never overlap.
"""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..auth import TokenManager
from ..config import get_config
from ..core.models.configuration import Device, Entity, SimulationConfiguration
from ..core.models.events import SimulationEvent, SimulationEventType
from ..core.schedule import Schedule, parse_schedule
from ..errors import (
    FDSError,
    InvalidInterpolationSpec,
    SimulationConfigurationNotValid,
    TokenNotAvailable,
    ValueResolutionError,
)
from ..iota.transport import HttpDeviceTransport, MqttDeviceTransport, transport_for
from ..ngsi.client import ContextBrokerClient
from ..ngsi.payloads import AttributeValue, EntityUpdate
from ..resolver import AttributeEvaluator, resolve
from ..utils.clock import now as clock_now
from .progress import SimulationProgress

logger = logging.getLogger(__name__)


# =============================================================================
# Update groups
# =============================================================================


@dataclass
class ResolvedAttribute:
    """An attribute and the evaluator producing its values."""

    name: str
    type: str | None
    evaluator: AttributeEvaluator


@dataclass
class UpdateGroup:
    """Attributes of one element sent together on one schedule.

    For entities `static` attributes are evaluated and sent with every update.
    """

    element_id: str
    schedule: Schedule
    attributes: list[ResolvedAttribute]
    static: list[ResolvedAttribute] = field(default_factory=list)
    entity_type: str | None = None
    protocol: str | None = None
    api_key: str | None = None
    ticks: int = 0

    @property
    def is_device(self) -> bool:
        return self.protocol is not None


def _resolve(spec: Any, where: str, configuration: SimulationConfiguration) -> AttributeEvaluator:
    try:
        return resolve(spec, configuration.domain, configuration.context_broker)
    except InvalidInterpolationSpec as e:
        raise SimulationConfigurationNotValid(f"{where}: {e}") from e


def _static_attributes(
    entity: Entity, entity_id: str, configuration: SimulationConfiguration
) -> list[ResolvedAttribute]:
    # Resolved once per group: evaluators (and their state) are never shared between groups
    return [
        ResolvedAttribute(
            attr.name,
            attr.type,
            _resolve(attr.value, f"{entity_id}.{attr.name}", configuration),
        )
        for attr in entity.static_attributes or []
    ]


def _entity_groups(entity: Entity, configuration: SimulationConfiguration) -> list[UpdateGroup]:
    groups: list[UpdateGroup] = []
    for entity_id in entity.ids():
        by_schedule: dict[str, list[ResolvedAttribute]] = {}
        for attr in entity.active or []:
            schedule_text = attr.schedule or entity.schedule
            by_schedule.setdefault(schedule_text, []).append(
                ResolvedAttribute(
                    attr.name,
                    attr.type,
                    _resolve(attr.value, f"{entity_id}.{attr.name}", configuration),
                )
            )
        if not by_schedule:
            by_schedule[entity.schedule] = []
        for schedule_text, attributes in by_schedule.items():
            groups.append(
                UpdateGroup(
                    element_id=entity_id,
                    schedule=parse_schedule(schedule_text),
                    attributes=attributes,
                    static=_static_attributes(entity, entity_id, configuration),
                    entity_type=entity.entity_type,
                )
            )
    return groups


def _device_groups(device: Device, configuration: SimulationConfiguration) -> list[UpdateGroup]:
    groups: list[UpdateGroup] = []
    api_key = configuration.api_key_for(device)
    for device_id in device.ids():
        by_schedule: dict[str, list[ResolvedAttribute]] = {}
        for attr in device.attributes:
            by_schedule.setdefault(attr.schedule or device.schedule, []).append(
                ResolvedAttribute(
                    attr.object_id,
                    None,
                    _resolve(attr.value, f"{device_id}.{attr.object_id}", configuration),
                )
            )
        for schedule_text, attributes in by_schedule.items():
            groups.append(
                UpdateGroup(
                    element_id=device_id,
                    schedule=parse_schedule(schedule_text),
                    attributes=attributes,
                    protocol=device.protocol,
                    api_key=api_key,
                )
            )
    return groups


def build_groups(configuration: SimulationConfiguration) -> list[UpdateGroup]:
    """Resolve every attribute of the configuration into update groups.

    Raises:
        SimulationConfigurationNotValid: If any attribute specification is invalid
    """
    groups: list[UpdateGroup] = []
    for entity in configuration.entities or []:
        groups.extend(_entity_groups(entity, configuration))
    for device in configuration.devices or []:
        groups.extend(_device_groups(device, configuration))
    return groups


# =============================================================================
# Summary
# =============================================================================


class SimulationSummary:
    """Summary of a finished simulation."""

    def __init__(
        self,
        stopped_reason: str,
        groups: int,
        ticks: int,
        runtime_seconds: float,
        completed_at: datetime,
        counters: dict[str, Any],
    ):
        self.stopped_reason = stopped_reason
        self.groups = groups
        self.ticks = ticks
        self.runtime_seconds = runtime_seconds
        self.completed_at = completed_at
        self.counters = counters

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "stopped_reason": self.stopped_reason,
            "groups": self.groups,
            "ticks": self.ticks,
            "runtime_seconds": self.runtime_seconds,
            "completed_at": self.completed_at.isoformat(),
            **self.counters,
        }


# =============================================================================
# Simulator
# =============================================================================


class Simulator:
    """Runs one simulation configuration until it ends, is stopped or times out.

    Example:
        simulator = Simulator(configuration)
        simulator.progress.on("update-response", print)
        summary = simulator.start()
    """

    def __init__(
        self,
        configuration: SimulationConfiguration | dict,
        progress: SimulationProgress | None = None,
        duration: float | None = None,
    ):
        self._document = configuration
        self.configuration: SimulationConfiguration | None = (
            configuration if isinstance(configuration, SimulationConfiguration) else None
        )
        self.progress = progress or SimulationProgress()
        self.duration = duration
        self.tokens: TokenManager | None = None
        self.context_broker: ContextBrokerClient | None = None
        self.groups: list[UpdateGroup] = []
        self._transports: dict[str, HttpDeviceTransport | MqttDeviceTransport] = {}
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stop_event: asyncio.Event | None = None
        self._stop_requested = threading.Event()

    # ── Control ──

    def start(self) -> SimulationSummary:
        """Run the simulation to completion (blocking).

        A configuration that cannot be validated or resolved ends the run at
        once: an `error` event then an `end` event, with reason "error".
        """
        started = time.time()
        try:
            self._prepare()
        except SimulationConfigurationNotValid as e:
            logger.error("Simulation configuration not valid: %s", e)
            self._emit(SimulationEventType.ERROR, error=e)
            self._emit(SimulationEventType.END)
            return self._summary("error", started)
        logger.info("Simulation configured with %d update groups", len(self.groups))
        return asyncio.run(self._run())

    def stop(self) -> None:
        """Request the simulation to stop; safe to call from any thread."""
        self._stop_requested.set()
        loop, stop_event = self._loop, self._stop_event
        if loop is not None and stop_event is not None and not loop.is_closed():
            loop.call_soon_threadsafe(stop_event.set)

    # ── Internals ──

    def _prepare(self) -> None:
        if self.configuration is None:
            self.configuration = SimulationConfiguration.from_dict(self._document)
        configuration = self.configuration
        self.groups = build_groups(configuration)
        self.tokens = TokenManager(configuration.authentication, configuration.domain, self.progress)
        if configuration.context_broker is not None:
            self.context_broker = ContextBrokerClient(
                configuration.context_broker, configuration.domain
            )

    def _emit(self, event_type: SimulationEventType, **kwargs: Any) -> None:
        self.progress.emit(SimulationEvent(type=event_type, **kwargs))

    def _summary(self, reason: str, started: float) -> SimulationSummary:
        summary = SimulationSummary(
            stopped_reason=reason,
            groups=len(self.groups),
            ticks=sum(group.ticks for group in self.groups),
            runtime_seconds=time.time() - started,
            completed_at=datetime.now(),
            counters=self.progress.snapshot(),
        )
        logger.info("Simulation finished (%s) after %.2fs", reason, summary.runtime_seconds)
        return summary

    def _transport(self, protocol: str) -> HttpDeviceTransport | MqttDeviceTransport:
        if protocol not in self._transports:
            _, endpoint = self.configuration.iota.for_protocol(protocol)
            self._transports[protocol] = transport_for(protocol, endpoint)
        return self._transports[protocol]

    async def _run(self) -> SimulationSummary:
        started = time.time()
        self._loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        if self._stop_requested.is_set():
            self._stop_event.set()

        reason = "completed"
        try:
            await asyncio.to_thread(self.tokens.get_token)
        except TokenNotAvailable as e:
            logger.error("Simulation aborted: %s", e)
            self._emit(SimulationEventType.ERROR, error=e)
            reason = "error"
        else:
            reason = await self._run_groups()
        finally:
            for transport in self._transports.values():
                await asyncio.to_thread(transport.close)
            self._loop = None

        if reason == "stopped":
            self._emit(SimulationEventType.STOP)
        self._emit(SimulationEventType.END)
        return self._summary(reason, started)

    async def _run_groups(self) -> str:
        semaphore = asyncio.Semaphore(get_config().simulation.max_concurrent_ticks)
        tasks = [asyncio.create_task(self._run_group(group, semaphore)) for group in self.groups]
        all_done = asyncio.gather(*tasks)
        stop_wait = asyncio.create_task(self._stop_event.wait())

        done, _ = await asyncio.wait(
            {all_done, stop_wait},
            timeout=self.duration,
            return_when=asyncio.FIRST_COMPLETED,
        )
        failure: BaseException | None = None
        if stop_wait in done:
            reason = "stopped"
        elif all_done in done:
            reason = "completed"
            failure = all_done.exception()
        else:
            reason = "duration"

        for task in tasks:
            task.cancel()
        stop_wait.cancel()
        await asyncio.gather(*tasks, all_done, stop_wait, return_exceptions=True)
        if failure is not None:
            raise failure
        return reason

    async def _run_group(self, group: UpdateGroup, semaphore: asyncio.Semaphore) -> None:
        self._emit(
            SimulationEventType.UPDATE_SCHEDULED,
            element_id=group.element_id,
            schedule=group.schedule.text,
        )
        while True:
            async with semaphore:
                await asyncio.to_thread(self._tick, group)
            if group.schedule.once:
                return
            await asyncio.sleep(group.schedule.interval)

    def _tick(self, group: UpdateGroup) -> None:
        """Evaluate and send one update of a group (runs in a worker thread)."""
        group.ticks += 1
        try:
            token = self.tokens.get_token()
        except TokenNotAvailable as e:
            logger.warning("Skipping update of %s: %s", group.element_id, e)
            self._emit(SimulationEventType.ERROR, element_id=group.element_id, error=e)
            return

        moment = clock_now()
        values: list[tuple[ResolvedAttribute, Any]] = []
        for attr in group.static + group.attributes:
            try:
                values.append((attr, attr.evaluator(token=token, now=moment)))
            except ValueResolutionError as e:
                logger.warning("Cannot resolve %s.%s: %s", group.element_id, attr.name, e)
                self._emit(SimulationEventType.ERROR, element_id=group.element_id, error=e)
        if not values:
            return

        try:
            if group.is_device:
                self._send_device(group, values, token)
            else:
                self._send_entity(group, values, token)
        except FDSError as e:
            logger.warning("Update of %s failed: %s", group.element_id, e)
            self._emit(SimulationEventType.ERROR, element_id=group.element_id, error=e)

    def _send_entity(
        self,
        group: UpdateGroup,
        values: list[tuple[ResolvedAttribute, Any]],
        token: str | None,
    ) -> None:
        element = EntityUpdate(
            entity_id=group.element_id,
            entity_type=group.entity_type,
            attributes=[AttributeValue(attr.name, attr.type, value) for attr, value in values],
        )
        request = self.context_broker.update_request([element])
        self._emit(SimulationEventType.UPDATE_REQUEST, element_id=group.element_id, request=request)
        response = self.context_broker.update([element], token)
        self._emit(
            SimulationEventType.UPDATE_RESPONSE,
            element_id=group.element_id,
            request=request,
            response=response,
        )

    def _send_device(
        self,
        group: UpdateGroup,
        values: list[tuple[ResolvedAttribute, Any]],
        token: str | None,
    ) -> None:
        transport = self._transport(group.protocol)
        measures = {attr.name: value for attr, value in values}
        request = transport.describe(group.api_key, group.element_id, measures)
        self._emit(SimulationEventType.UPDATE_REQUEST, element_id=group.element_id, request=request)
        response = transport.send(group.api_key, group.element_id, measures, token)
        self._emit(
            SimulationEventType.UPDATE_RESPONSE,
            element_id=group.element_id,
            request=request,
            response=response,
        )


def run_simulation(
    configuration: SimulationConfiguration | dict,
    duration: float | None = None,
    progress: SimulationProgress | None = None,
) -> SimulationSummary:
    """Convenience wrapper: build a Simulator and run it to completion."""
    return Simulator(configuration, progress=progress, duration=duration).start()
