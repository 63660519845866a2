"""Tests for region name resolution."""

import pytest

from statgraph.errors import RegionNotFoundError
from statgraph.services.regions.mapper import RegionMapper


@pytest.fixture
def mapper():
    return RegionMapper(
        regions={
            "москва": "RU-MOW",
            "волгоградская область": "RU-VGG",
            "кемеровская область": "RU-KEM",
            "краснодарский край": "RU-KDA",
        },
        typo_fixes={"кемеровская_область_-_кузбасс": "кемеровская_область"},
    )


def test_exact_match_is_case_insensitive(mapper):
    assert mapper.resolve("Москва") == "RU-MOW"
    assert mapper.resolve("  Волгоградская   область ") == "RU-VGG"


def test_underscores_are_spaces(mapper):
    assert mapper.resolve("волгоградская_область") == "RU-VGG"


def test_typo_fix_applies_before_matching(mapper):
    assert mapper.resolve("Кемеровская_область_-_Кузбасс") == "RU-KEM"


def test_first_word_match(mapper):
    assert mapper.resolve("Краснодарский") == "RU-KDA"


def test_five_letter_prefix_match(mapper):
    assert mapper.resolve("Волгоградской области") == "RU-VGG"


def test_short_word_has_no_prefix_match(mapper):
    with pytest.raises(RegionNotFoundError):
        mapper.resolve("Волг")


def test_unknown_region_raises(mapper):
    with pytest.raises(RegionNotFoundError) as exc_info:
        mapper.resolve("Атлантида")
    assert exc_info.value.region_name == "Атлантида"


def test_reference_file_loads():
    mapper = RegionMapper.from_file()
    assert mapper.resolve("Москва") == "RU-MOW"
    assert mapper.resolve("Санкт-Петербург") == "RU-SPE"
    assert all(code.startswith("RU-") for code in mapper.regions.values())
