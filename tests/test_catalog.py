# tests/test_catalog.py
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from habitpulse.core.achievements.catalog import DEFAULT_ACHIEVEMENTS, AchievementCatalog
from habitpulse.core.achievements.exceptions import AchievementNotFound


@pytest.mark.asyncio
async def test_seed_defaults_is_idempotent(db_session: AsyncSession):
    catalog = AchievementCatalog(db_session)

    created = await catalog.seed_defaults()
    again = await catalog.seed_defaults()

    assert len(created) == len(DEFAULT_ACHIEVEMENTS) == 10
    assert again == []
    first_steps = await catalog.require("first_steps")
    assert first_steps.criteria_value == 1
    assert first_steps.points_reward == 50
    fitness = await catalog.get("fitness_enthusiast")
    assert fitness.criteria_metadata == {"domain_id": 1}


@pytest.mark.asyncio
async def test_seed_defaults_keeps_existing_rows(db_session: AsyncSession, make_achievement):
    await make_achievement("first_steps", name="Custom", criteria_value=3)

    created = await AchievementCatalog(db_session).seed_defaults()

    assert "first_steps" not in created
    assert (await AchievementCatalog(db_session).get("first_steps")).name == "Custom"


@pytest.mark.asyncio
async def test_list_all_filters_hidden(db_session: AsyncSession, make_achievement):
    await make_achievement("visible")
    await make_achievement("hidden", is_hidden=True)
    catalog = AchievementCatalog(db_session)

    assert [a.id for a in await catalog.list_all()] == ["visible"]
    assert {a.id for a in await catalog.list_all(include_hidden=True)} == {"visible", "hidden"}


@pytest.mark.asyncio
async def test_require_unknown(db_session: AsyncSession):
    with pytest.raises(AchievementNotFound):
        await AchievementCatalog(db_session).require("ghost")
