import unittest

from city_filters import CityFilter
from explorer_config import (
    DEFAULT_API_URL,
    DEFAULT_FETCH_TIMEOUT,
    load_settings,
    parse_filter_form,
    parse_form_int,
)


class ParseFormIntTests(unittest.TestCase):
    def test_leading_integer(self) -> None:
        self.assertEqual(parse_form_int("120"), 120)
        self.assertEqual(parse_form_int(" 42abc"), 42)
        self.assertEqual(parse_form_int("3.9"), 3)
        self.assertEqual(parse_form_int("-5"), -5)
        self.assertEqual(parse_form_int(7), 7)

    def test_unusable_values(self) -> None:
        for raw in ("", "abc", None, True, float("nan")):
            self.assertIsNone(parse_form_int(raw))


class ParseFilterFormTests(unittest.TestCase):
    def test_all_fields(self) -> None:
        options = parse_filter_form(max_count="2", min_population="100000", region=" Bretagne ")
        self.assertEqual(options, CityFilter(region="Bretagne", min_population=100000, max_count=2))

    def test_invalid_fields_become_noops(self) -> None:
        for max_count, min_population, region in (
            ("", "", ""),
            ("abc", "xyz", "   "),
            ("0", "0", None),
            ("-5", "-1", ""),
        ):
            self.assertEqual(
                parse_filter_form(max_count=max_count, min_population=min_population, region=region),
                CityFilter(),
            )


class LoadSettingsTests(unittest.TestCase):
    def test_defaults(self) -> None:
        settings = load_settings({})
        self.assertEqual(settings.api_url, DEFAULT_API_URL)
        self.assertEqual(settings.fetch_timeout, DEFAULT_FETCH_TIMEOUT)

    def test_overrides(self) -> None:
        settings = load_settings(
            {
                "CITY_EXPLORER_API_URL": "http://cities.test/citys",
                "CITY_EXPLORER_TIMEOUT": "0",
                "CITY_EXPLORER_ZOOM": "8",
            }
        )
        self.assertEqual(settings.api_url, "http://cities.test/citys")
        self.assertIsNone(settings.fetch_timeout)
        self.assertEqual(settings.zoom, 8)

    def test_rejects_bad_numbers(self) -> None:
        with self.assertRaises(ValueError):
            load_settings({"CITY_EXPLORER_TIMEOUT": "soon"})
        with self.assertRaises(ValueError):
            load_settings({"CITY_EXPLORER_ZOOM": "far"})


if __name__ == "__main__":
    unittest.main()
