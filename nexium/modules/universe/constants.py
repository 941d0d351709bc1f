"""Name vocabularies and encounter flavour text for generated sectors."""

from typing import Dict, Tuple

from nexium.domain.models.sector import HazardKind, ResourceKind, SectorType

SECTOR_PREFIXES: Tuple[str, ...] = (
    "Alpha", "Beta", "Gamma", "Delta", "Epsilon", "Zeta", "Eta", "Theta",
    "Iota", "Kappa", "Lambda", "Mu", "Nu", "Xi", "Omicron", "Pi", "Rho",
    "Sigma", "Tau", "Upsilon", "Phi", "Chi", "Psi", "Omega",
)

SECTOR_SUFFIXES: Tuple[str, ...] = (
    "Nebula", "Cluster", "System", "Void", "Expanse", "Region", "Zone",
    "Sector", "Quadrant", "Territory", "Domain", "Realm", "Space",
    "Field", "Belt", "Ring", "Haven", "Reach", "Frontier", "Outpost",
)

SECTOR_TYPES: Tuple[SectorType, ...] = tuple(SectorType)
RESOURCE_KINDS: Tuple[ResourceKind, ...] = tuple(ResourceKind)
HAZARD_KINDS: Tuple[HazardKind, ...] = tuple(HazardKind)

NAME_NUMBER_CHANCE = 0.6
NAME_NUMBER_RANGE = (1, 999)

DIFFICULTY_RANGE = (1, 5)
MAX_RESOURCES = 3
RESOURCE_ABUNDANCE_RANGE = (50, 549)
MAX_HAZARDS = 2
HAZARD_INTENSITY_RANGE = (1, 10)

ENCOUNTERS: Dict[SectorType, Tuple[str, ...]] = {
    SectorType.ASTEROID_FIELD: (
        "You navigate through a dense field of slowly rotating asteroids.",
        "Mining drones detect valuable ore deposits in the asteroid clusters.",
        "Ancient ship wrecks drift among the asteroids, telling tales of past battles.",
        "Unexpected gravity fluctuations make navigation challenging.",
    ),
    SectorType.GAS_GIANT: (
        "The massive planet's storms rage across its surface in hypnotic patterns.",
        "Floating cities of an unknown civilization orbit in the upper atmosphere.",
        "Your sensors detect rare gases that could power your ship for months.",
        "Strange bio-luminescent creatures swim through the dense gas layers.",
    ),
    SectorType.PLANETARY_SYSTEM: (
        "Multiple worlds orbit a stable star, showing signs of terraforming.",
        "Trade beacons indicate this system is part of an active commerce route.",
        "Defense satellites challenge your approach with automated hails.",
        "One planet shows clear signs of recent industrial development.",
    ),
    SectorType.NEBULA: (
        "Brilliant colors swirl around your ship as you enter the nebula.",
        "Communication systems are disrupted by the dense particle clouds.",
        "Your ship's hull begins to glow with accumulated static charge.",
        "Hidden within the nebula, you discover a previously unknown space station.",
    ),
    SectorType.BLACK_HOLE: (
        "Time dilation effects make your chronometer spin wildly.",
        "The accretion disk provides a spectacular but dangerous light show.",
        "Gravitational lensing reveals distant galaxies behind the singularity.",
        "Your ship's AI calculates a narrow corridor of stable spacetime.",
    ),
    SectorType.ANCIENT_RUINS: (
        "Massive structures drift in space, clearly of non-human origin.",
        "Faint energy signatures suggest some systems are still active.",
        "Hieroglyphic-like symbols cover the hull of the alien construct.",
        "Your approach triggers ancient defense systems that scan your ship.",
    ),
}

DEFAULT_ENCOUNTERS: Tuple[str, ...] = (
    "Your sensors detect unusual readings from this uncharted region.",
    "The void of space here seems different somehow, charged with potential.",
    "Navigation charts will need updating after this discovery.",
)
