"""
Per-sector-type exploration narratives.

A success line that mentions a find is used only when a resource was
actually found; otherwise the plain survey line is used. Failure lines
never mention loot or damage.
"""

from typing import Dict, NamedTuple

from nexium.domain.models.sector import Sector, SectorType


class Narrative(NamedTuple):
    found: str
    surveyed: str
    failed: str


# "{name}" is the sector name
NARRATIVES: Dict[SectorType, Narrative] = {
    SectorType.ASTEROID_FIELD: Narrative(
        "You successfully navigate through the {name} asteroid field, avoiding collisions and finding valuable minerals!",
        "You successfully navigate through the {name} asteroid field and chart a safe passage.",
        "Shifting rocks in the {name} asteroid field force you to turn back before finding anything of value.",
    ),
    SectorType.GAS_GIANT: Narrative(
        "Your sensors detect rare gases and energy signatures around the massive {name} gas giant!",
        "You complete a full orbital survey of the massive {name} gas giant.",
        "The intense radiation from {name} scrambles your sensors and the survey comes up empty.",
    ),
    SectorType.PLANETARY_SYSTEM: Narrative(
        "You discover an inhabited planetary system in {name} and trade for local materials!",
        "You discover an inhabited planetary system in {name} with potential trading opportunities!",
        "Hostile patrols in the {name} system force you to retreat quickly.",
    ),
    SectorType.NEBULA: Narrative(
        "The beautiful {name} nebula yields exotic matter and energy readings!",
        "You chart the shifting clouds of the {name} nebula.",
        "Dense particle clouds in {name} blind your sensors and the survey is abandoned.",
    ),
    SectorType.BINARY_STAR: Narrative(
        "Material ejected by the {name} binary star system is collected by your scoops!",
        "You record the unique electromagnetic properties of the {name} binary star system.",
        "Dangerous solar flares from {name} force an emergency retreat.",
    ),
    SectorType.BLACK_HOLE: Narrative(
        "Debris caught around {name} drifts within reach of your collectors!",
        "You carefully study the gravitational anomalies around {name} and record detailed measurements.",
        "The intense gravitational pull of {name} forces you to break off the approach.",
    ),
    SectorType.ANCIENT_RUINS: Narrative(
        "You recover salvageable materials from the mysterious ruins of {name}!",
        "You map the mysterious ruins of {name}.",
        "Automated defense systems in {name} activate, forcing you to flee.",
    ),
}

DEFAULT_NARRATIVE = Narrative(
    "You successfully explore {name} and recover useful materials!",
    "You successfully explore {name}!",
    "Your exploration of {name} encounters difficulties.",
)


def describe_exploration(sector: Sector, success: bool, found_resource: bool = False) -> str:
    narrative = NARRATIVES.get(sector.sector_type, DEFAULT_NARRATIVE)
    if not success:
        text = narrative.failed
    elif found_resource:
        text = narrative.found
    else:
        text = narrative.surveyed
    return text.format(name=sector.name)
