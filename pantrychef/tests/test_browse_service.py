# tests/test_browse_service.py
import uuid

import pytest

from pantrychef.services.browse_service import BrowseService, escape_like
from pantrychef.services.errors import StoreUnavailableError


@pytest.fixture
def garlic_store(seed_recipe):
    return {
        "rice": seed_recipe("Garlic Rice", tags=["side"]),
        "soup": seed_recipe("Chicken Soup", tags=["comfort", "soup"]),
        "bread": seed_recipe("garlic Bread"),
    }


async def _titles(query):
    return [s.title async for s in query]


@pytest.mark.asyncio
async def test_filter_is_case_insensitive_substring(fake_db, garlic_store):
    svc = BrowseService(fake_db)
    assert await _titles(svc.browse("garlic")) == ["garlic Bread", "Garlic Rice"]
    assert await _titles(svc.browse("GARLIC")) == ["garlic Bread", "Garlic Rice"]


@pytest.mark.asyncio
@pytest.mark.parametrize("title_filter", [None, "", "   "])
async def test_empty_filter_lists_everything_newest_first(fake_db, garlic_store, title_filter):
    svc = BrowseService(fake_db)
    assert await _titles(svc.browse(title_filter)) == ["garlic Bread", "Chicken Soup", "Garlic Rice"]


@pytest.mark.asyncio
async def test_no_match_is_empty(fake_db, garlic_store):
    assert await BrowseService(fake_db).browse("pizza").all() == []


@pytest.mark.asyncio
async def test_summaries_carry_tags_only(fake_db, garlic_store):
    summaries = await BrowseService(fake_db).browse("soup").all()
    assert len(summaries) == 1
    soup = summaries[0]
    assert soup.id == garlic_store["soup"]
    assert soup.tags == ["comfort", "soup"]
    assert not hasattr(soup, "ingredients")


@pytest.mark.asyncio
async def test_query_is_lazy_and_restartable(fake_db, seed_recipe):
    svc = BrowseService(fake_db)
    seed_recipe("Garlic Rice")

    query = svc.browse("garlic")
    assert fake_db.calls == [("insert", "recipes")]

    assert await _titles(query) == ["Garlic Rice"]
    seed_recipe("Garlic Noodles")
    assert await _titles(query) == ["Garlic Noodles", "Garlic Rice"]


@pytest.mark.asyncio
async def test_wildcards_in_filter_match_literally(fake_db, seed_recipe):
    seed_recipe("100% Rye Bread")
    seed_recipe("1000 Island Dressing")
    svc = BrowseService(fake_db)

    assert await _titles(svc.browse("100%")) == ["100% Rye Bread"]
    assert await _titles(svc.browse("_")) == []


def test_escape_like():
    assert escape_like(r"50%_off\now") == r"50\%\_off\\now"


@pytest.mark.asyncio
async def test_star_in_filter_is_a_wildcard(fake_db, garlic_store):
    svc = BrowseService(fake_db)
    assert escape_like("Gar*Rice") == "Gar*Rice"
    assert await _titles(svc.browse("gar*rice")) == ["Garlic Rice"]
    assert len(await svc.browse("*").all()) == 3


@pytest.mark.asyncio
async def test_recent_is_limited(fake_db, seed_recipe):
    for n in range(8):
        seed_recipe(f"Recipe {n}")

    recent = await BrowseService(fake_db).recent().all()
    assert [s.title for s in recent] == [f"Recipe {n}" for n in range(7, 1, -1)]


@pytest.mark.asyncio
async def test_owned_by(fake_db, seed_recipe, user_id, other_user_id):
    seed_recipe("Mine")
    seed_recipe("Theirs", owner=other_user_id)

    owned = await BrowseService(fake_db).owned_by(other_user_id).all()
    assert [s.title for s in owned] == ["Theirs"]


@pytest.mark.asyncio
async def test_saved_by(fake_db, seed_recipe, other_user_id):
    first = seed_recipe("First")
    seed_recipe("Second")
    third = seed_recipe("Third")
    fake_db.tables["saved_recipes"] = [
        {"id": str(uuid.uuid4()), "user_id": other_user_id, "recipe_id": first},
        {"id": str(uuid.uuid4()), "user_id": other_user_id, "recipe_id": third},
    ]
    svc = BrowseService(fake_db)

    assert await _titles(svc.saved_by(other_user_id)) == ["Third", "First"]
    assert await svc.saved_by(str(uuid.uuid4())).all() == []


@pytest.mark.asyncio
async def test_store_failure_surfaces(fake_db, garlic_store):
    fake_db.fail("select", "recipes")
    with pytest.raises(StoreUnavailableError):
        await BrowseService(fake_db).browse("garlic").all()
