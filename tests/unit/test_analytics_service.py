"""Unit tests for the analytics query service."""

from datetime import datetime, timedelta
from uuid import uuid4

import pytest

from linkpulse.core.errors import DataInconsistencyError, InvalidArgumentError, NotFoundError
from linkpulse.schemas import ClickListQuery, Period, TimeSeriesQuery, TopLinksQuery
from linkpulse.services.analytics import AnalyticsService, page_info
from tests.conftest import NOW


@pytest.fixture
def service(link_store, user_store, click_store):
    return AnalyticsService(
        link_store,
        user_store,
        click_store,
        default_period=Period.DAY,
        page_size=10,
        clock=lambda: NOW,
    )


class TestPageInfo:
    def test_middle_page(self):
        assert page_info(5, 2, 2) == {
            "total_pages": 3,
            "current_page": 2,
            "has_next_page": True,
            "has_previous_page": True,
        }

    def test_empty(self):
        info = page_info(0, 1, 10)
        assert info["total_pages"] == 0
        assert info["has_next_page"] is False
        assert info["has_previous_page"] is False


class TestQueryValidation:
    def test_defaults_limit_to_page_size(self, service):
        query = service.query(TopLinksQuery)
        assert (query.page, query.limit, query.period) == (1, 10, None)

    def test_none_values_ignored(self, service):
        query = service.query(TopLinksQuery, period=None, page=None, limit=5)
        assert query.limit == 5

    @pytest.mark.parametrize(
        "params",
        [{"period": "2h"}, {"page": 0}, {"limit": 0}, {"limit": 101}, {"page": "abc"}],
        ids=["bad_period", "page_zero", "limit_zero", "limit_too_big", "page_not_int"],
    )
    def test_invalid_top_links_params(self, service, params):
        with pytest.raises(InvalidArgumentError) as exc_info:
            service.query(TopLinksQuery, **params)
        assert exc_info.value.details

    def test_reversed_date_range(self, service):
        with pytest.raises(InvalidArgumentError):
            service.query(
                TimeSeriesQuery,
                start_date=datetime(2024, 2, 1),
                end_date=datetime(2024, 1, 1),
            )

    def test_timezone_aware_dates_become_naive_utc(self, service):
        query = service.query(
            TimeSeriesQuery,
            start_date="2024-01-01T02:00:00+02:00",
            end_date="2024-02-01T00:00:00Z",
        )

        assert query.start_date == datetime(2024, 1, 1)
        assert query.end_date == datetime(2024, 2, 1)

    def test_mixed_naive_and_aware_dates(self, service):
        query = service.query(
            TimeSeriesQuery,
            start_date="2024-01-01T00:00:00Z",
            end_date="2024-02-01T00:00:00",
        )
        assert query.start_date < query.end_date

    def test_reversed_mixed_dates(self, service):
        with pytest.raises(InvalidArgumentError):
            service.query(
                TimeSeriesQuery,
                start_date="2024-02-01T00:00:00Z",
                end_date="2024-01-01T00:00:00",
            )


class TestTopLinks:
    @pytest.fixture
    def five_links(self, link_store, click_store, minutes_ago):
        links = []
        for index, clicks in enumerate([10, 8, 6, 4, 2]):
            link = link_store.add(f"code{index}")
            for _ in range(clicks):
                click_store.add(link.id, minutes_ago(5 + index))
            links.append(link)
        return links

    async def test_second_page(self, service, five_links):
        response = await service.top_links(TopLinksQuery(page=2, limit=2))

        assert [entry.clicks_count for entry in response.top_links] == [6, 4]
        assert [entry.rank for entry in response.top_links] == [3, 4]
        assert response.total_pages == 3
        assert response.current_page == 2
        assert response.has_next_page is True
        assert response.has_previous_page is True
        assert response.quantity_links == 5
        assert response.period is Period.DAY

    async def test_joins_link_metadata(self, service, five_links):
        response = await service.top_links(TopLinksQuery(limit=1))

        top = response.top_links[0]
        assert top.link_id == five_links[0].id
        assert top.short_code == "code0"
        assert top.original_url == five_links[0].original_url
        assert top.percentage == "33.33"

    async def test_period_bounds_window(self, service, link_store, click_store):
        recent = link_store.add("recent")
        old = link_store.add("old")
        click_store.add(recent.id, NOW - timedelta(minutes=30))
        click_store.add(old.id, NOW - timedelta(hours=5))
        click_store.add(old.id, NOW - timedelta(hours=6))

        hour = await service.top_links(TopLinksQuery(period=Period.HOUR))
        day = await service.top_links(TopLinksQuery(period="24h"))

        assert [entry.short_code for entry in hour.top_links] == ["recent"]
        assert [entry.short_code for entry in day.top_links] == ["old", "recent"]

    async def test_no_clicks(self, service):
        response = await service.top_links(TopLinksQuery())

        assert response.top_links == []
        assert response.total_pages == 0
        assert response.has_next_page is False

    async def test_default_period_from_configuration(self, link_store, user_store, click_store):
        service = AnalyticsService(
            link_store, user_store, click_store,
            default_period=Period.MONTH, clock=lambda: NOW,
        )
        link = link_store.add()
        click_store.add(link.id, NOW - timedelta(days=10))

        response = await service.top_links(TopLinksQuery())

        assert response.period is Period.MONTH
        assert response.quantity_links == 1


class TestConversionRate:
    async def test_ratio(self, service, link_store, click_store):
        links = [link_store.add() for _ in range(4)]
        for index in range(10):
            click_store.add(links[index % 4].id)

        response = await service.conversion_rate()

        assert response.total_links == 4
        assert response.total_clicks == 10
        assert response.conversion_rate == "2.50"
        assert response.click_ratio == "250.00%"
        assert response.timestamp == NOW

    async def test_no_links(self, service):
        response = await service.conversion_rate()

        assert response.total_links == 0
        assert response.total_clicks == 0
        assert response.conversion_rate == 0
        assert response.message


class TestGeneralAnalytics:
    async def test_counts(self, service, link_store, user_store, click_store):
        owner = user_store.add("PREMIUM")
        user_store.add("FREE")
        user_store.add("FREE")
        link = link_store.add(user_id=owner.id)
        click_store.add(link.id)

        response = await service.general_analytics()

        assert response.total_links == 1
        assert response.total_clicks == 1
        assert response.total_users == 3
        assert response.total_premium_users == 1
        assert response.total_free_users == 2
        assert response.total_guest_users == 0
        assert response.total_admin_users == 0
        assert {(item.role, item.count) for item in response.distribution_users} == {
            ("PREMIUM", 1), ("FREE", 2),
        }

    async def test_inconsistent_role_counts(self, service, user_store):
        user_store.add("FREE")
        user_store.add("ADMIN")
        user_store.role_counts_override = {"FREE": 1}

        with pytest.raises(DataInconsistencyError) as exc_info:
            await service.general_analytics()

        assert exc_info.value.details == {"total_users": 2, "role_sum": 1}


class TestGeographic:
    async def test_rankings_and_integrity(self, service, link_store, click_store, minutes_ago):
        link = link_store.add()
        click_store.add(link.id, minutes_ago(5), country="Norway", city="Oslo")
        click_store.add(link.id, minutes_ago(4), country="Norway", city=None)
        click_store.add(link.id, minutes_ago(3), country=None, city="Paris")
        click_store.add(link.id, minutes_ago(2), country="France", city="Paris", device="mobile")

        response = await service.geographic()

        stats = response.stats
        assert stats.total_clicks == 4
        assert stats.country_clicks == 3
        assert stats.unique_countries == 2
        assert stats.top_country == "Norway"
        assert stats.top_city == "Paris"
        assert stats.top_device == "desktop"
        assert [item.value for item in response.rankings.top_countries] == ["Norway", "France"]
        assert response.rankings.top_countries[0].percentage == "66.67"

        integrity = response.metadata.data_integrity
        assert integrity.countries_without_cities == 1
        assert integrity.cities_without_country == 1
        assert integrity.has_incomplete_data is True
        assert response.metadata.query_limit == 10

    async def test_devices_capped_at_five(self, service, link_store, click_store):
        link = link_store.add()
        for device in ["a", "b", "c", "d", "e", "f", "g"]:
            click_store.add(link.id, device=device)

        response = await service.geographic()

        assert len(response.rankings.top_devices) == 5
        assert response.stats.unique_devices == 7

    async def test_empty(self, service):
        response = await service.geographic()

        assert response.stats.total_clicks == 0
        assert response.stats.top_country is None
        assert response.metadata.data_integrity.has_incomplete_data is False


class TestDeviceBrowserDistribution:
    async def test_totals(self, service, link_store, click_store):
        link = link_store.add()
        click_store.add(link.id, device="mobile", browser="Safari")
        click_store.add(link.id, device="mobile", browser="Chrome")
        click_store.add(link.id, device="desktop", browser="Chrome")

        response = await service.device_browser_distribution()

        assert response.device_totals == {"mobile": 2, "desktop": 1}
        assert response.browser_totals == {"Chrome": 2, "Safari": 1}
        assert response.device_stats.total_devices == 2
        assert response.device_stats.total_records == 3


class TestTimeSeries:
    async def test_window_and_nesting(self, service, link_store, user_store, click_store):
        owner = user_store.add()
        early = link_store.add("early", created_at=datetime(2024, 1, 5), user_id=owner.id)
        late = link_store.add("late", created_at=datetime(2024, 1, 20))
        link_store.add("outside", created_at=datetime(2024, 3, 1))
        click_store.add(early.id, datetime(2024, 1, 6))

        response = await service.time_series(TimeSeriesQuery(
            start_date=datetime(2024, 1, 1),
            end_date=datetime(2024, 1, 31),
            limit=10,
        ))

        assert response.quantity_links == 2
        assert [item.short_code for item in response.time_series] == ["early", "late"]
        assert len(response.time_series[0].clicks) == 1
        assert response.time_series[0].user.id == owner.id
        assert response.time_series[1].user is None
        assert late.id == response.time_series[1].id

    async def test_utc_window(self, service, link_store):
        link_store.add("inside", created_at=datetime(2024, 1, 5))
        link_store.add("before", created_at=datetime(2023, 12, 31, 23))

        response = await service.time_series(service.query(
            TimeSeriesQuery, start_date="2024-01-01T00:00:00Z",
        ))

        assert [item.short_code for item in response.time_series] == ["inside"]


class TestLinkStats:
    async def test_breakdown(self, service, link_store, click_store):
        link = link_store.add("stats")
        other = link_store.add("other")
        click_store.add(link.id, NOW - timedelta(days=2), country="Norway")
        click_store.add(link.id, NOW - timedelta(days=1), country="Norway")
        click_store.add(link.id, NOW - timedelta(days=1, hours=1), country="Sweden")
        click_store.add(link.id, NOW - timedelta(days=45), country="Denmark")
        click_store.add(other.id, NOW, country="Finland")

        response = await service.link_stats(link.id)

        assert response.link.id == link.id
        assert response.total_clicks == 4
        assert [item.value for item in response.metrics.by_country] == ["Norway", "Denmark", "Sweden"]
        dates = [point.date for point in response.metrics.time_series]
        assert dates == sorted(dates)
        assert [point.clicks for point in response.metrics.time_series] == [1, 2]
        assert len(response.recent_clicks) == 4
        assert response.recent_clicks[0].created_at == NOW - timedelta(days=1)

    async def test_unknown_link(self, service):
        with pytest.raises(NotFoundError):
            await service.link_stats(uuid4())


class TestListClicks:
    async def test_filters_and_pagination(self, service, link_store, user_store, click_store, minutes_ago):
        user = user_store.add()
        link = link_store.add()
        click_store.add(link.id, minutes_ago(3), country="United States", user_id=user.id)
        click_store.add(link.id, minutes_ago(2), country="United Kingdom")
        click_store.add(link.id, minutes_ago(1), country="Norway")

        united = await service.list_clicks(ClickListQuery(country="united", limit=1))
        by_user = await service.list_clicks(ClickListQuery(user_id=user.id))

        assert united.quantity_clicks == 2
        assert united.total_pages == 2
        assert [click.country for click in united.clicks] == ["United Kingdom"]
        assert [click.user_id for click in by_user.clicks] == [user.id]
