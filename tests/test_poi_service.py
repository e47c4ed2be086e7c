import random

import pytest

from neighborhood_explorer.models.dto import DiscoveryStatus, FreeTextResult, StructuredResult
from neighborhood_explorer.services.mapbox_client import ProviderUnavailable
from neighborhood_explorer.services.poi_service import (
    PLACEHOLDER_NAME,
    NoCredential,
    POIDiscoveryPipeline,
    candidates_from,
)
from neighborhood_explorer.utils.geo_filter import contains_point

TOKEN = "pk.test-token"


@pytest.mark.asyncio
async def test_parks_served_by_bounded_category_search(pipeline, provider, lake_nona, structured, structured_feature):
    provider.category_search.return_value = structured(
        structured_feature("p-3", "Lake Nona Town Center Park", -81.27, 28.39),
        structured_feature("p-1", "Laureate Park", -81.29, 28.36),
        structured_feature("p-2", "Northlake Park", -81.26, 28.34),
    )

    result = await pipeline.discover(lake_nona, "parks", TOKEN)

    assert result.status == DiscoveryStatus.OK
    assert result.tier == 1
    assert result.poi_ids == ["p-3", "p-1", "p-2"]
    provider.category_search.assert_awaited_once()
    provider.text_search.assert_not_awaited()

    query, token = provider.category_search.await_args.args
    assert token == TOKEN
    assert query.category_token == "park"
    assert query.bbox == lake_nona.bounds
    assert query.proximity == lake_nona.center
    assert query.limit == 12


@pytest.mark.asyncio
async def test_bounded_tier_rechecks_bounds(pipeline, provider, lake_nona, structured, structured_feature):
    provider.category_search.return_value = structured(
        structured_feature("in", "Inside", -81.27, 28.39),
        structured_feature("out", "Outside", -81.0, 28.39),
    )

    result = await pipeline.discover(lake_nona, "parks", TOKEN)

    assert result.tier == 1
    assert result.poi_ids == ["in"]
    assert result.attempts[0].raw_count == 2
    assert result.attempts[0].qualified_count == 1


@pytest.mark.asyncio
async def test_entertainment_served_by_radius_tier(pipeline, provider, lake_nona, structured, structured_feature):
    lng, lat = lake_nona.center
    provider.category_search.side_effect = [
        structured(),
        structured(
            structured_feature("a", "Cinema", lng, lat + 0.02, "entertainment"),       # ~2.2 km
            structured_feature("b", "Arena", lng, lat + 0.05, "entertainment"),        # ~5.6 km
            structured_feature("c", "Arcade", lng, lat + 0.005, "entertainment"),      # ~0.6 km
            structured_feature("d", "Theme Park", lng + 0.05, lat, "entertainment"),   # ~4.9 km
            structured_feature("e", "Bowling", lng, lat - 0.01, "entertainment"),      # ~1.1 km
        ),
    ]

    result = await pipeline.discover(lake_nona, "entertainment", TOKEN)

    assert result.status == DiscoveryStatus.OK
    assert result.tier == 2
    assert result.poi_ids == ["c", "e", "a"]
    distances = [poi.distance_meters for poi in result.pois]
    assert distances == sorted(distances)
    assert all(d <= 3000 for d in distances)
    provider.text_search.assert_not_awaited()

    relaxed_query = provider.category_search.await_args_list[1].args[0]
    assert relaxed_query.bbox is None
    assert relaxed_query.limit == 20


@pytest.mark.asyncio
async def test_radius_tier_result_is_exactly_the_qualified_set(pipeline, provider, lake_nona, structured, structured_feature):
    lng, lat = lake_nona.center
    provider.category_search.side_effect = [
        structured(),
        structured(structured_feature("only", "Only One", lng + 0.001, lat)),
    ]

    result = await pipeline.discover(lake_nona, "sports", TOKEN)

    assert result.tier == 2
    assert result.poi_ids == ["only"]
    assert [a.tier for a in result.attempts] == [1, 2]


@pytest.mark.asyncio
async def test_free_text_tier_prefers_candidates_inside_bounds(
    pipeline, provider, lake_nona, free_text, text_feature
):
    provider.text_search.return_value = free_text(
        text_feature("poi.far", "Far Grocer", -81.0, 28.6),
        text_feature("poi.near", "Near Grocer", -81.28, 28.37),
    )

    result = await pipeline.discover(lake_nona, "grocery", TOKEN)

    assert result.tier == 3
    assert result.poi_ids == ["poi.near"]
    query, _ = provider.text_search.await_args.args
    assert query.phrase == "grocery"
    assert query.bbox is None
    assert query.limit == 8


@pytest.mark.asyncio
async def test_free_text_tier_accepts_top_results_when_nothing_is_inside(
    pipeline, provider, lake_nona, free_text, text_feature
):
    provider.text_search.return_value = free_text(
        *[text_feature(f"poi.{i}", f"Mall {i}", -80.5, 28.0 + i * 0.01) for i in range(10)]
    )

    result = await pipeline.discover(lake_nona, "shopping", TOKEN)

    assert result.tier == 3
    assert result.poi_ids == [f"poi.{i}" for i in range(8)]
    assert not any(contains_point(lake_nona.bounds, poi.coordinates) for poi in result.pois)


@pytest.mark.asyncio
async def test_provider_failure_falls_through_to_next_tier(
    pipeline, provider, lake_nona, structured, structured_feature
):
    lng, lat = lake_nona.center
    provider.category_search.side_effect = [
        ProviderUnavailable("boom"),
        structured(structured_feature("x", "Fallback", lng, lat + 0.001)),
    ]

    result = await pipeline.discover(lake_nona, "parks", TOKEN)

    assert result.tier == 2
    assert result.attempts[0].failed
    assert not result.attempts[1].failed


@pytest.mark.asyncio
async def test_all_tiers_empty_reports_empty_result(pipeline, provider, lake_nona):
    result = await pipeline.discover(lake_nona, "parks", TOKEN)

    assert result.status == DiscoveryStatus.EMPTY
    assert result.pois == []
    assert result.tier is None
    assert result.viewport == lake_nona.bounds
    assert result.message
    assert [a.tier for a in result.attempts] == [1, 2, 3]


@pytest.mark.asyncio
async def test_all_tiers_failing_is_still_an_empty_result(pipeline, provider, lake_nona):
    provider.category_search.side_effect = ProviderUnavailable("down")
    provider.text_search.side_effect = ProviderUnavailable("down")

    result = await pipeline.discover(lake_nona, "parks", TOKEN)

    assert result.status == DiscoveryStatus.EMPTY
    assert all(a.failed for a in result.attempts)


@pytest.mark.asyncio
async def test_missing_credential_is_refused(pipeline, provider, lake_nona):
    with pytest.raises(NoCredential):
        await pipeline.discover(lake_nona, "parks", "")
    provider.category_search.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize("token", ["   ", "\t\n"])
async def test_blank_credential_is_refused(pipeline, provider, lake_nona, token):
    with pytest.raises(NoCredential):
        await pipeline.discover(lake_nona, "parks", token)
    provider.category_search.assert_not_awaited()
    provider.text_search.assert_not_awaited()


@pytest.mark.asyncio
async def test_tiers_stop_at_first_qualified_set(pipeline, provider, lake_nona, structured, structured_feature):
    provider.category_search.side_effect = [
        structured(),
        structured(structured_feature("p-1", "Laureate Park", -81.29, 28.36)),
    ]

    result = await pipeline.discover(lake_nona, "parks", TOKEN)

    assert result.tier == 2
    assert [a.tier for a in result.attempts] == [1, 2]
    assert provider.category_search.await_count == 2
    provider.text_search.assert_not_awaited()


@pytest.mark.asyncio
async def test_candidates_without_coordinates_are_dropped(pipeline, provider, lake_nona, structured, structured_feature):
    unlocated = structured_feature("ghost", "Ghost", 0, 0)
    unlocated["geometry"] = None
    provider.category_search.return_value = structured(
        unlocated,
        structured_feature("real", "Real Park", -81.27, 28.37),
    )

    result = await pipeline.discover(lake_nona, "parks", TOKEN)

    assert result.poi_ids == ["real"]


@pytest.mark.asyncio
async def test_structured_center_fallback_is_used(pipeline, provider, lake_nona, structured):
    provider.category_search.return_value = structured({
        "type": "Feature",
        "properties": {
            "mapbox_id": "routable",
            "name": "Routable Park",
            "coordinates": {"longitude": -81.27, "latitude": 28.37},
        },
    })

    result = await pipeline.discover(lake_nona, "parks", TOKEN)

    assert result.pois[0].coordinates == (-81.27, 28.37)


@pytest.mark.asyncio
async def test_normalization_defaults(pipeline, provider, lake_nona, free_text):
    provider.text_search.return_value = free_text({"center": [-81.27, 28.37]})

    result = await pipeline.discover(lake_nona, "food-drink", TOKEN)

    poi = result.pois[0]
    assert poi.id == "lake-nona-south-food-drink-0"
    assert poi.name == PLACEHOLDER_NAME
    assert poi.address == "Lake Nona South"
    assert poi.category == "food drink"
    assert poi.coordinates == (-81.27, 28.37)


@pytest.mark.asyncio
async def test_normalization_uses_provider_fields(pipeline, provider, lake_nona, free_text, text_feature):
    provider.text_search.return_value = free_text(
        text_feature("poi.1", "Canvas", -81.27, 28.37),
        text_feature("poi.2", "Chroma", -81.28, 28.38, address="6967 Lake Nona Blvd"),
    )

    result = await pipeline.discover(lake_nona, "food-drink", TOKEN)

    first, second = result.pois
    assert first.name == "Canvas"
    assert first.address == "Canvas"
    assert first.category == "park"
    assert second.address == "6967 Lake Nona Blvd"


@pytest.mark.asyncio
async def test_placeholders_stay_in_range(provider, lake_nona, structured, structured_feature):
    pipeline = POIDiscoveryPipeline(provider, rng=random.Random(1))
    provider.category_search.return_value = structured(
        *[structured_feature(f"id-{i}", f"Place {i}", -81.27 + i * 0.001, 28.37) for i in range(12)]
    )

    result = await pipeline.discover(lake_nona, "highlights", TOKEN)

    for poi in result.pois:
        assert 4.0 <= poi.rating <= 4.9
        assert 50 <= poi.reviews <= 549
        assert poi.price_level in ("$", "$$", "$$$")
        assert poi.image_url.startswith("https://loremflickr.com/400/250/highlights,modern/")


@pytest.mark.asyncio
async def test_duplicates_are_removed(pipeline, provider, lake_nona, structured, structured_feature):
    provider.category_search.return_value = structured(
        structured_feature("dup", "Same Place", -81.27, 28.37),
        structured_feature("dup", "Same Place Again", -81.26, 28.36),
        structured_feature("other-id", "Same Place", -81.27, 28.37),
        structured_feature("unique", "Unique", -81.25, 28.35),
    )

    result = await pipeline.discover(lake_nona, "parks", TOKEN)

    assert result.poi_ids == ["dup", "unique"]


@pytest.mark.asyncio
async def test_rerun_with_same_response_gives_same_order(provider, lake_nona, structured, structured_feature):
    lng, lat = lake_nona.center
    relaxed = structured(
        structured_feature("a", "A", lng, lat + 0.02),
        structured_feature("b", "B", lng, lat + 0.001),
        structured_feature("c", "C", lng - 0.01, lat),
    )

    async def run():
        provider.category_search.side_effect = [structured(), relaxed]
        return await POIDiscoveryPipeline(provider).discover(lake_nona, "parks", TOKEN)

    first = await run()
    second = await run()
    assert first.poi_ids == second.poi_ids == ["b", "c", "a"]


@pytest.mark.asyncio
async def test_viewport_frames_all_pois(pipeline, provider, lake_nona, structured, structured_feature):
    provider.category_search.return_value = structured(
        structured_feature("a", "A", -81.30, 28.35),
        structured_feature("b", "B", -81.25, 28.40),
    )

    result = await pipeline.discover(lake_nona, "parks", TOKEN)

    assert result.viewport.sw == (-81.30, 28.35)
    assert result.viewport.ne == (-81.25, 28.40)


def test_candidates_from_dispatches_on_kind(structured_feature, text_feature):
    structured_candidates = candidates_from(StructuredResult(features=[structured_feature("s", "S", 1.0, 2.0)]))
    assert structured_candidates[0].id == "s"
    assert structured_candidates[0].name == "S"
    assert structured_candidates[0].categories == ["park"]

    text_candidates = candidates_from(FreeTextResult(features=[text_feature("t", "T", 1.0, 2.0)]))
    assert text_candidates[0].id == "t"
    assert text_candidates[0].center == [1.0, 2.0]
    assert text_candidates[0].categories == ["park", "garden"]
