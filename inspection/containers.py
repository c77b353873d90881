from dataclasses import dataclass
from typing import Optional

# ISO 6346 size/type code: [length][height][type group][detail]
LENGTH_CODES = {"2": "20ft", "4": "40ft", "5": "45ft", "M": "48ft"}
HEIGHT_CODES = {"2": "8ft 6in", "5": "9ft 6in"}
TYPE_GROUPS = {
    "G": "Dry Container",
    "R": "Refrigerated Container",
    "U": "Open Top Container",
    "P": "Platform Container",
    "T": "Tank Container",
}


@dataclass(frozen=True)
class ContainerSpec:
    container_type: str
    size: str
    height: str


ISO_CODES = {
    f"{length}{height}{group}1": ContainerSpec(type_name, size, height_name)
    for length, size in LENGTH_CODES.items()
    for height, height_name in HEIGHT_CODES.items()
    for group, type_name in TYPE_GROUPS.items()
}


def lookup_iso_code(iso_code: Optional[str]) -> Optional[ContainerSpec]:
    """Type and size for a known code such as 45G1, None otherwise."""
    if not iso_code:
        return None
    return ISO_CODES.get(iso_code.strip().upper())
