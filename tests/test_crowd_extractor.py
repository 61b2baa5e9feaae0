"""
Extração de crowd level a partir do HTML renderizado.

Cobertura
---------
- Classificação por texto (busy / moderate / not busy)
- Precedência de "not busy" sobre "busy"
- Fallback por porcentagem
- Página sem widget "Popular times"
- Determinismo da extração
- Leitura UNKNOWN quando o parsing falha
"""

from datetime import datetime

import pytest

from crowd_scraper.services.scraper import CrowdLevel, classify_busyness, extract_crowd_data_from_page
from crowd_scraper.services.scraper import crowd_extractor
from crowd_scraper.services.scraper.crowd_extractor import level_from_percentage

# Hora sem data-hour correspondente nos fixtures: cai no elemento aria-checked
NOW = datetime(2024, 5, 10, 3, 0)


class TestClassifyBusyness:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("Live: As busy as it gets", CrowdLevel.BUSY),
            ("Usually a little busy", CrowdLevel.MODERATE),
            ("Usually not busy", CrowdLevel.NOT_BUSY),
            ("Not too busy", CrowdLevel.NOT_BUSY),
            ("not busy", CrowdLevel.NOT_BUSY),
            ("Not very busy right now", CrowdLevel.NOT_BUSY),
            ("Closed now", CrowdLevel.UNKNOWN),
            ("", CrowdLevel.UNKNOWN),
        ],
    )
    def test_classification(self, text, expected):
        assert classify_busyness(text) is expected

    def test_busy_with_negation_elsewhere_is_not_busy_level(self):
        assert classify_busyness("busy? not really") is not CrowdLevel.BUSY


class TestLevelFromPercentage:
    @pytest.mark.parametrize(
        "percentage, expected",
        [
            (0, CrowdLevel.NOT_BUSY),
            (32, CrowdLevel.NOT_BUSY),
            (33, CrowdLevel.MODERATE),
            (66, CrowdLevel.MODERATE),
            (67, CrowdLevel.BUSY),
            (100, CrowdLevel.BUSY),
        ],
    )
    def test_thresholds(self, percentage, expected):
        assert level_from_percentage(percentage) is expected


class TestExtractCrowdData:
    def test_busy_page(self, busy_html):
        data = extract_crowd_data_from_page(busy_html, "Joe's Pizza", now=NOW)

        assert data is not None
        assert data.crowd_level is CrowdLevel.BUSY
        assert data.crowd_percentage == 82
        assert data.average_time_spent == "People typically spend up to 3 hours here"
        assert data.restaurant_name == "Joe's Pizza"
        assert data.source == "google"

    def test_moderate_page(self, moderate_html):
        data = extract_crowd_data_from_page(moderate_html, now=NOW)

        assert data.crowd_level is CrowdLevel.MODERATE
        assert data.crowd_percentage == 45

    def test_not_busy_page(self, not_busy_html):
        data = extract_crowd_data_from_page(not_busy_html, now=NOW)

        assert data.crowd_level is CrowdLevel.NOT_BUSY
        assert data.crowd_percentage is None
        assert data.average_time_spent == "People typically spend 15 min here"

    def test_percentage_fallback(self, percentage_only_html):
        data = extract_crowd_data_from_page(percentage_only_html, now=NOW)

        assert data.crowd_level is CrowdLevel.NOT_BUSY
        assert data.crowd_percentage == 20
        assert data.average_time_spent == ""

    def test_page_without_popular_times_returns_none(self, no_popular_times_html):
        assert extract_crowd_data_from_page(no_popular_times_html, now=NOW) is None

    def test_empty_markup_returns_none(self):
        assert extract_crowd_data_from_page("", now=NOW) is None

    def test_current_hour_element_wins_over_selected(self):
        markup = """
        <div><span>Popular times</span>
          <div data-hour="3">Not too busy</div>
          <div aria-checked="true">As busy as it gets</div>
        </div>
        """
        data = extract_crowd_data_from_page(markup, now=NOW)

        assert data.crowd_level is CrowdLevel.NOT_BUSY

    def test_repeated_extraction_is_deterministic(self, busy_html):
        first = extract_crowd_data_from_page(busy_html, now=NOW)
        second = extract_crowd_data_from_page(busy_html, now=NOW)

        assert first.crowd_level == second.crowd_level
        assert first.average_time_spent == second.average_time_spent
        assert first.crowd_percentage == second.crowd_percentage

    def test_parse_error_yields_unknown_reading_with_empty_dwell(self, busy_html, monkeypatch):
        def broken(text):
            raise RuntimeError("unexpected markup")

        monkeypatch.setattr(crowd_extractor, "classify_busyness", broken)

        data = extract_crowd_data_from_page(busy_html, "Cafe Central", now=NOW)

        assert data.crowd_level is CrowdLevel.UNKNOWN
        assert data.average_time_spent == ""
        assert data.crowd_percentage is None
        assert data.restaurant_name == "Cafe Central"
