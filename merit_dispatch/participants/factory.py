"""Build participants and orders from validated descriptor dictionaries.

A descriptor is a flat mapping of attributes plus a ``type`` tag:

===============  =========================
``type``         Class
===============  =========================
``must_run``     MustRunProducer
``volatile``     VolatileProducer
``dispatchable`` DispatchableProducer
``interconnect`` SupplyInterconnect
``storage``      Storage
``user``         User
===============  =========================

Profile references (``load_profile``) are resolved against a mapping of named
profiles; series attributes (``load_curve``, ``cost_curve``) may be a single
number repeated over the horizon or one value per point.  A numeric ``decay``
is the share of stored energy lost per point.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from merit_dispatch.config.defaults import FLAT_PROFILE_KEY, POINTS
from merit_dispatch.core.curve import Curve, LoadProfile
from merit_dispatch.core.errors import MissingAttributeError
from merit_dispatch.dispatch.order import Order, merit_order
from merit_dispatch.participants.participant import Participant, User
from merit_dispatch.participants.producers import (
    DispatchableProducer,
    MustRunProducer,
    SupplyInterconnect,
    VolatileProducer,
)
from merit_dispatch.participants.storage import Storage
from merit_dispatch.storage.reserve import constant_decay

logger = logging.getLogger(__name__)

PARTICIPANT_TYPES: dict[str, type[Participant]] = {
    "must_run": MustRunProducer,
    "volatile": VolatileProducer,
    "dispatchable": DispatchableProducer,
    "interconnect": SupplyInterconnect,
    "storage": Storage,
    "user": User,
}


def build_participant(
    descriptor: Mapping[str, Any],
    profiles: Mapping[str, LoadProfile] | None = None,
    points: int = POINTS,
) -> Participant:
    """Create one participant from *descriptor*.

    Raises
    ------
    MissingAttributeError
        When ``type`` or a required attribute of the type is absent.
    ValueError
        When the type is unknown, a profile is undefined or a series has the
        wrong length.
    """
    attributes = dict(descriptor)
    kind = attributes.pop("type", None)
    if kind is None:
        raise MissingAttributeError("type", "participant")
    if kind not in PARTICIPANT_TYPES:
        raise ValueError(
            f"Unknown participant type '{kind}'. "
            f"Valid types: {sorted(PARTICIPANT_TYPES)}."
        )

    if "load_profile" in attributes:
        attributes["load_profile"] = _resolve_profile(
            attributes["load_profile"], profiles or {}, points
        )
    for name in ("load_curve", "cost_curve"):
        if name in attributes:
            attributes[name] = _resolve_series(name, attributes[name], points)
    if "decay" in attributes:
        attributes["decay"] = constant_decay(float(attributes["decay"]))

    attributes["points"] = points
    return PARTICIPANT_TYPES[kind].from_attributes(attributes)


def build_order(
    descriptors: Iterable[Mapping[str, Any]],
    profiles: Mapping[str, LoadProfile] | None = None,
    points: int = POINTS,
) -> Order:
    """Build every participant and return an :class:`Order` in merit order.

    Producers are sorted by base cost (stable, so ties keep descriptor
    order); users keep their descriptor order.
    """
    participants = [build_participant(d, profiles, points) for d in descriptors]
    producers = merit_order(p for p in participants if not p.user)
    users = [p for p in participants if p.user]

    logger.debug(
        "Built order with %d producers and %d users over %d points",
        len(producers),
        len(users),
        points,
    )
    return Order([*producers, *users])


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _resolve_profile(
    reference: str | list[float] | LoadProfile,
    profiles: Mapping[str, LoadProfile],
    points: int,
) -> LoadProfile:
    if isinstance(reference, LoadProfile):
        profile = reference
    elif isinstance(reference, str):
        if reference == FLAT_PROFILE_KEY and reference not in profiles:
            return LoadProfile.flat(points)
        if reference not in profiles:
            raise ValueError(
                f"Undefined load profile '{reference}'. "
                f"Defined profiles: {sorted(profiles)}."
            )
        profile = profiles[reference]
    else:
        profile = LoadProfile(reference)

    if len(profile) != points:
        raise ValueError(
            f"Load profile has {len(profile)} points; the scenario has {points}."
        )
    return profile


def _resolve_series(name: str, value: float | list[float] | Curve, points: int) -> Curve:
    if isinstance(value, Curve):
        curve = value
    elif isinstance(value, (int, float)):
        return Curve.from_scalar(value, points)
    else:
        curve = Curve(value)

    if len(curve) != points:
        raise ValueError(f"'{name}' has {len(curve)} values; the scenario has {points}.")
    return curve
