"""Tool-style operation surface over one case.

``AppealService`` is what the HTTP routes and the CLI call. Every operation
returns a plain dict carrying the current case projection (property,
comparables, derived strength) plus a short markdown ``text`` summary, so a
presentation layer never recomputes aggregates itself.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Callable, Dict, Mapping, Optional

from .case import CaseStateStore, CaseView
from .config import AppConfig, get_config
from .comps.search import ComparableSearchEngine
from .errors import InvalidComparable, InvalidProperty, SequencingViolation
from .formatting import format_currency, format_number
from .models import Property, PropertyType, Tone
from .narrative import compose_narrative
from .packet import PacketBuilder, render_submission_guide
from .policy import DEFAULT_POLICY, FilingPolicy, check_eligibility
from .records.base import RecordSource
from .resolver import PropertyResolver, ResolveStatus

logger = logging.getLogger("sfir.service")

COMPARABLE_ACTIONS = ("add", "update", "remove", "toggle", "list")
_PROPERTY_OPTIONAL = ("area", "bedroom_count", "bathroom_count", "latitude", "longitude")


def _number(payload: Mapping[str, Any], name: str, *, required: bool = False) -> Optional[float]:
    value = payload.get(name)
    if value is None or value == "":
        if required:
            raise InvalidProperty(f"{name} is required", field=name)
        return None
    if isinstance(value, bool):
        raise InvalidProperty(f"{name} must be a number", field=name)
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidProperty(f"{name} must be a number", field=name) from exc


def property_from_payload(payload: Mapping[str, Any]) -> Property:
    """Build a Property from a manage-property payload, validating everything."""

    address = str(payload.get("address") or "").strip()
    parcel_id = str(payload.get("parcel_id") or "").strip()
    missing = [name for name, value in (("address", address), ("parcel_id", parcel_id)) if not value]
    if missing:
        raise InvalidProperty(f"{', '.join(missing)} required", missing_fields=missing)

    try:
        property_type = PropertyType(str(payload.get("property_type") or PropertyType.SINGLE_FAMILY))
    except ValueError as exc:
        allowed = ", ".join(t.value for t in PropertyType)
        raise InvalidProperty(
            f"property_type must be one of: {allowed}", field="property_type"
        ) from exc

    assessed = _number(payload, "assessed_value", required=True)
    reference = _number(payload, "reference_value")
    optional = {name: _number(payload, name) for name in _PROPERTY_OPTIONAL}
    year = payload.get("year_built")
    zone = payload.get("zone")
    try:
        year_built = int(year) if year not in (None, "") else None
    except (TypeError, ValueError) as exc:
        raise InvalidProperty("year_built must be an integer", field="year_built") from exc

    return Property(
        address=address,
        parcel_id=parcel_id,
        property_type=property_type,
        assessed_value=assessed,
        reference_value=reference if reference is not None else assessed,
        zone=str(zone).strip() if zone else None,
        year_built=year_built,
        **optional,
    )


def _strength_line(view: CaseView) -> str:
    if view.strength is None:
        return ""
    if view.mean_included_price is None:
        return f"Case strength: **{str(view.strength).upper()}**"
    return (
        f"Average included sale price: {format_currency(round(view.mean_included_price))} | "
        f"Case strength: **{str(view.strength).upper()}**"
    )


class AppealService:
    def __init__(
        self,
        source: RecordSource,
        *,
        config: Optional[AppConfig] = None,
        policy: FilingPolicy = DEFAULT_POLICY,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self.config = config or get_config()
        self.policy = policy
        self.clock = clock
        self.source = source
        self.resolver = PropertyResolver.from_config(
            source, self.config, region_tokens=policy.region_tokens
        )
        self.search_engine = ComparableSearchEngine.from_config(source, self.config, clock=clock)
        self.packet_builder = PacketBuilder(policy, clock=clock)

    # -- resolve ---------------------------------------------------------

    async def resolve_property(
        self,
        store: CaseStateStore,
        *,
        address: Optional[str] = None,
        block: Optional[str] = None,
        lot: Optional[str] = None,
        reference_value: Optional[float] = None,
    ) -> Dict[str, Any]:
        async with store.lock:
            outcome = await self.resolver.resolve(
                address=address, block=block, lot=lot, reference_value=reference_value
            )
            if outcome.status is ResolveStatus.RESOLVED and outcome.property is not None:
                store.set_property(outcome.property)
            view = store.snapshot()

        if outcome.status is ResolveStatus.RESOLVED and outcome.property is not None:
            p = outcome.property
            text = "\n".join(
                [
                    f"**Property found:** {p.address} (APN {p.parcel_id})",
                    f"Type: {p.property_type} | Assessed: {format_currency(p.assessed_value)}",
                    "Next step: find comparable sales.",
                ]
            )
        elif outcome.status is ResolveStatus.AMBIGUOUS:
            lines = [f"Found {len(outcome.candidates)} properties. {outcome.message}"]
            lines += [
                f"- {c.address} (APN {c.parcel_id}, {c.property_type}, {format_currency(c.assessed_value)})"
                for c in outcome.candidates
            ]
            text = "\n".join(lines)
        else:
            text = outcome.message

        return {**outcome.to_dict(), "case": view.to_dict(), "text": text}

    # -- comparables -----------------------------------------------------

    async def find_comparables(
        self,
        store: CaseStateStore,
        *,
        radius: float = 0.5,
        months_back: int = 24,
        limit: int = 15,
    ) -> Dict[str, Any]:
        async with store.lock:
            outcome = await self.search_engine.search(
                store, radius=radius, months_back=months_back, limit=limit
            )

        if outcome.empty:
            text = (
                f"No comparable sales found within {format_number(outcome.radius_used)} miles "
                f"in the last {months_back} months. Add comparables manually instead."
            )
        else:
            expanded = (
                f" (expanded from {format_number(outcome.requested_radius)} mi)"
                if outcome.expanded
                else ""
            )
            text = (
                f"Found {outcome.rows_found - outcome.discarded} comparable sales within "
                f"{format_number(outcome.radius_used)} miles{expanded}. "
                f"Added {len(outcome.added)} new, skipped {outcome.skipped_duplicates} already on file."
            )
            strength = _strength_line(outcome.view)
            if strength:
                text += "\n" + strength
        return {**outcome.to_dict(), "text": text}

    async def manage_comparable(
        self,
        store: CaseStateStore,
        action: str,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        payload = dict(payload or {})
        if action not in COMPARABLE_ACTIONS:
            raise InvalidComparable(
                f"Unknown action {action!r}; expected one of {', '.join(COMPARABLE_ACTIONS)}",
                field="action",
            )

        async with store.lock:
            if action == "list":
                view = store.snapshot()
                return {
                    "action": action,
                    "comparable": None,
                    "case": view.to_dict(),
                    "text": "\n".join(
                        line
                        for line in (
                            f"{len(view.comparables)} comparables on file, {len(view.included)} included.",
                            _strength_line(view),
                        )
                        if line
                    ),
                }
            if action == "add":
                result = store.add_comparable(payload)
            else:
                comp_id = str(payload.pop("id", "") or "").strip()
                if not comp_id:
                    raise InvalidComparable(
                        f"A comparable id is required to {action} a comparable.",
                        missing_fields=["id"],
                    )
                if action == "update":
                    result = store.update_comparable(comp_id, payload)
                elif action == "remove":
                    result = store.remove_comparable(comp_id)
                else:
                    result = store.toggle_comparable(comp_id)

        comp = result.comparable
        verb = {"add": "added", "update": "updated", "remove": "removed", "toggle": "toggled"}[action]
        text = f"Comparable {verb}: {comp.address} ({comp.id})" if comp else f"Comparable {verb}."
        if action == "toggle" and comp is not None:
            text += " - now " + ("included" if comp.included else "excluded")
        strength = _strength_line(result.view)
        if strength:
            text += "\n" + strength
        logger.info("comparable %s", verb, extra={"comparable_id": comp.id if comp else None})
        return {
            "action": action,
            "comparable": comp.to_dict() if comp else None,
            "case": result.view.to_dict(),
            "text": text,
        }

    # -- property --------------------------------------------------------

    async def manage_property(self, store: CaseStateStore, payload: Mapping[str, Any]) -> Dict[str, Any]:
        prop = property_from_payload(payload)
        async with store.lock:
            view = store.set_property(prop)
        text = (
            f"Property saved: {prop.address} (APN {prop.parcel_id}), assessed at "
            f"{format_currency(prop.assessed_value)}."
        )
        if prop.coordinates is None:
            text += " No coordinates on file, so comparables must be added manually."
        return {"property": prop.to_dict(), "case": view.to_dict(), "text": text}

    def check_eligibility(
        self,
        property_type: str,
        assessed_value: float,
        reference_value: float,
    ) -> Dict[str, Any]:
        if assessed_value <= 0 or reference_value <= 0:
            raise InvalidProperty("assessed and reference values must be positive")
        result = check_eligibility(
            property_type,
            assessed_value,
            reference_value,
            policy=self.policy,
            today=self.clock(),
        )
        text = "\n".join(
            [
                f"**Eligible:** {'Yes' if result.eligible else 'No'}",
                f"**Filing window:** {'OPEN' if result.window_open else 'CLOSED'} ({result.window_label})",
                f"**Gap:** {format_currency(result.gap)} ({result.to_dict()['gap_percent']}%) | "
                f"**Strength:** {str(result.strength).upper()}",
                "",
                result.guidance,
            ]
        )
        return {**result.to_dict(), "text": text}

    # -- argument and packet ---------------------------------------------

    async def draft_argument(
        self,
        store: CaseStateStore,
        *,
        tone: Tone | str = Tone.NEUTRAL,
        declared_value: Optional[float] = None,
    ) -> Dict[str, Any]:
        try:
            tone = Tone(tone)
        except ValueError as exc:
            raise InvalidProperty(
                f"tone must be one of: {', '.join(t.value for t in Tone)}", field="tone"
            ) from exc

        async with store.lock:
            prop = store.case.property
            if prop is None:
                raise SequencingViolation(
                    "No property on file. Resolve or enter the property first.",
                    missing="property",
                )
            argument = compose_narrative(
                prop, store.included_comparables(), tone, declared_value
            )
            view = store.set_argument(argument)
        return {"argument": argument.to_dict(), "case": view.to_dict(), "text": argument.narrative}

    async def build_packet(self, store: CaseStateStore) -> Dict[str, Any]:
        async with store.lock:
            packet = self.packet_builder.build(store.snapshot())
        return {**packet.to_dict(), "text": packet.markdown}

    async def export_packet(self, store: CaseStateStore) -> str:
        async with store.lock:
            return self.packet_builder.build(store.snapshot()).markdown

    def submission_info(self) -> Dict[str, Any]:
        today = self.clock()
        return {
            "jurisdiction": self.policy.jurisdiction,
            "window_open": self.policy.is_window_open(today),
            "window_label": self.policy.window_label(),
            "lien_date": self.policy.lien_date,
            "portal_url": self.policy.portal_url,
            "mail": list(self.policy.mail_lines),
            "fax": self.policy.fax,
            "email": self.policy.email,
            "rules": list(self.policy.rules),
            "after_filing": list(self.policy.after_filing),
            "disclaimer": self.policy.disclaimer,
            "text": render_submission_guide(self.policy, today),
        }

