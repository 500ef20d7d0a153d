"""Activity lookup used to personalize notification text."""

import logging
from collections.abc import Callable, Mapping
from typing import TypeAlias

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

DEFAULT_ACTIVITY_NAME = "Focus Session"
DEFAULT_ACTIVITY_COLOR = "#2563eb"


class Activity(BaseModel):
    """Display attributes of a focus activity."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, description="Human-readable activity name")
    color: str = Field(default=DEFAULT_ACTIVITY_COLOR, description="Accent color, e.g. '#4ADE80'")


GENERIC_ACTIVITY = Activity(name=DEFAULT_ACTIVITY_NAME)

ActivityLookup: TypeAlias = Callable[[str], Activity | None]


class CatalogActivityLookup:
    """Resolve activity ids against a static catalog (the `[activities]` config table)."""

    def __init__(self, catalog: Mapping[str, Activity]) -> None:
        self._catalog = dict(catalog)

    def __call__(self, activity_id: str) -> Activity | None:
        return self._catalog.get(activity_id)


def resolve_activity(lookup: ActivityLookup, activity_id: str) -> Activity:
    """Look up an activity, falling back to the generic label on any failure."""
    try:
        activity = lookup(activity_id)
    except Exception:
        logger.warning("Activity lookup failed for id=%s, using generic label", activity_id, exc_info=True)
        return GENERIC_ACTIVITY
    if activity is None:
        logger.debug("Unknown activity id=%s, using generic label", activity_id)
        return GENERIC_ACTIVITY
    return activity
