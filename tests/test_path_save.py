import pytest

from daily_alchemy import models
from daily_alchemy.core.errors import InvalidCombination
from daily_alchemy.core.normalizer import combination_key
from daily_alchemy.schemas import Element, NewCombination, Path, Step
from daily_alchemy.services import CatalogStore, PathSaveService

LAVA = Element(name="Lava", emoji="🌋")

LAVA_PATH = Path(steps=[
    Step(a="Fire", b="Earth", result_name="Stone", result_emoji="🪨", provisional=True),
    Step(a="Fire", b="Stone", result_name="Lava", result_emoji="🌋", provisional=True),
])


def test_save_creates_missing_steps(db):
    result = PathSaveService(db).save_path(LAVA, LAVA_PATH, actor="admin")

    assert (result.created, result.skipped) == (2, 0)
    assert result.conflicts == [] and result.errors == []
    record = CatalogStore(db).lookup_by_key(combination_key("Stone", "Fire"))
    assert record.result_name == "Lava"
    assert record.admin_defined and record.oracle_generated


def test_saving_twice_changes_nothing(db):
    service = PathSaveService(db)
    service.save_path(LAVA, LAVA_PATH)
    snapshot = CatalogStore(db).snapshot()

    again = service.save_path(LAVA, LAVA_PATH)

    assert (again.created, again.skipped) == (0, 2)
    assert CatalogStore(db).snapshot() == snapshot


def test_conflicting_step_keeps_catalog_answer(db):
    CatalogStore(db).insert_if_absent(NewCombination(
        key="earth|fire", element_a="Earth", element_b="Fire", result_name="Magma", result_emoji="🔥"))

    result = PathSaveService(db).save_path(LAVA, LAVA_PATH)

    assert result.created == 1
    assert result.skipped == 1
    assert len(result.conflicts) == 1
    assert result.conflicts[0].existing.name == "Magma"
    assert result.conflicts[0].generated.name == "Stone"
    assert CatalogStore(db).lookup_by_key("earth|fire").result_name == "Magma"


def test_placeholder_is_added_when_target_is_not_produced(db):
    path = Path(steps=[Step(a="Fire", b="Water", result_name="Steam", result_emoji="💨")])

    result = PathSaveService(db).save_path(Element(name="Unicorn", emoji="🦄"), path)

    assert result.created == 1
    placeholder = db.query(models.ElementCombination).filter_by(key="_admin_unicorn").one()
    assert placeholder.element_a == "_ADMIN"
    assert placeholder.result_name == "Unicorn"
    assert CatalogStore(db).lookup_by_result("Unicorn") == []


def test_target_emoji_follows_catalog(db):
    CatalogStore(db).insert_if_absent(NewCombination(
        key="fire|mud", element_a="Fire", element_b="Mud", result_name="lava", result_emoji="🌋"))

    PathSaveService(db).save_path(Element(name="Lava", emoji="🔴"), LAVA_PATH)

    assert CatalogStore(db).lookup_by_key("fire|stone").result_emoji == "🌋"


def test_starter_target_is_rejected(db):
    with pytest.raises(InvalidCombination):
        PathSaveService(db).save_path(Element(name="Water"), LAVA_PATH)
