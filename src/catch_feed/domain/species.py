"""Catalogue of freshwater species recognised by search."""

from dataclasses import dataclass


@dataclass(frozen=True)
class SpeciesOption:
    """A stored species value and its display label."""

    value: str
    label: str


FRESHWATER_SPECIES: tuple[SpeciesOption, ...] = (
    SpeciesOption("arctic_char", "Arctic Char"),
    SpeciesOption("atlantic_salmon", "Atlantic Salmon"),
    SpeciesOption("barbel", "Barbel"),
    SpeciesOption("bleak", "Bleak"),
    SpeciesOption("bream", "Bream"),
    SpeciesOption("common_bream", "Common Bream"),
    SpeciesOption("silver_bream", "Silver Bream"),
    SpeciesOption("brown_trout", "Brown Trout"),
    SpeciesOption("bullhead", "Bullhead"),
    SpeciesOption("carp", "Carp"),
    SpeciesOption("common_carp", "Common Carp"),
    SpeciesOption("mirror_carp", "Mirror Carp"),
    SpeciesOption("leather_carp", "Leather Carp"),
    SpeciesOption("ghost_carp", "Ghost Carp"),
    SpeciesOption("grass_carp", "Grass Carp"),
    SpeciesOption("crucian_carp", "Crucian Carp"),
    SpeciesOption("wels_catfish", "Wels Catfish"),
    SpeciesOption("chub", "Chub"),
    SpeciesOption("dace", "Dace"),
    SpeciesOption("european_eel", "European Eel"),
    SpeciesOption("golden_orfe", "Golden Orfe"),
    SpeciesOption("grayling", "Grayling"),
    SpeciesOption("gudgeon", "Gudgeon"),
    SpeciesOption("ide", "Ide"),
    SpeciesOption("perch", "Perch"),
    SpeciesOption("pike", "Northern Pike"),
    SpeciesOption("rainbow_trout", "Rainbow Trout"),
    SpeciesOption("roach", "Roach"),
    SpeciesOption("rudd", "Rudd"),
    SpeciesOption("tench", "Tench"),
    SpeciesOption("zander", "Zander"),
)


def match_species(lower_case_term: str) -> list[str]:
    """Return stored species values whose value or label contains the term."""
    return [
        option.value
        for option in FRESHWATER_SPECIES
        if lower_case_term in option.label.lower()
        or lower_case_term in option.value.lower()
    ]
