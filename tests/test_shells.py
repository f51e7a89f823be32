import unittest
from unittest import mock

from blocking_chart.parse_modules.shared import BRAND_SAY_DIGITAL, NormalizedRow
from blocking_chart.parse_modules.shells import (
    UTMParameters,
    build_shell,
    create_creative_shell,
    create_targeting_layer,
    duplicate_creative_shell,
    duplicate_targeting_layer,
    generate_utm_url,
    shell_display_name,
    usable_audience,
)


def make_row(**overrides) -> NormalizedRow:
    values = {
        "channel": "Digital Display",
        "tactic": "Programmatic",
        "platform": "DV360",
        "objective": "Awareness",
        "placements": "Banner",
        "demo_targeting": "Adults 25-54",
        "impressions_grps": "1000000",
        "total_working_media_budget": "15000.00",
        "category": BRAND_SAY_DIGITAL,
    }
    values.update(overrides)
    return NormalizedRow(**values)


class ShellBuilderTests(unittest.TestCase):
    def test_shell_copies_row_fields_and_seeds_one_layer(self):
        shell = build_shell(make_row(start_date="2026-07-01"))
        self.assertEqual(shell.name, "Digital Display Programmatic")
        self.assertEqual(shell.working_media_budget, "15000.00")
        self.assertEqual(shell.impressions, "1000000")
        self.assertEqual(shell.category, BRAND_SAY_DIGITAL)
        self.assertEqual(shell.taxonomy_name, "")
        self.assertEqual(shell.start_date, "2026-07-01")
        self.assertEqual(len(shell.targeting_layers), 1)
        layer = shell.targeting_layers[0]
        self.assertEqual(layer.audience_name, "Adults 25-54")
        self.assertEqual(layer.line_item_name, "")
        self.assertEqual(layer.creatives, [])

    def test_display_name_drops_channel_when_tactic_names_platform(self):
        self.assertEqual(shell_display_name(make_row(channel="Paid Social", tactic="Meta Video", platform="meta")), "Meta Video")
        self.assertEqual(shell_display_name(make_row(channel="", tactic="Reels", platform="Meta")), "Reels")

    def test_audience_heuristics(self):
        self.assertEqual(usable_audience("Beauty Enthusiasts"), "Beauty Enthusiasts")
        for rejected in ("", "  ", "A1", "1,000", "12.5", "$5 CPM", "cpp 12", "Adults CPM"):
            self.assertEqual(usable_audience(rejected), "", rejected)

    def test_age_band_audiences_are_kept(self):
        for band in ("25-54", "18-34", "18+", "65+"):
            self.assertEqual(usable_audience(band), band)
        layer = build_shell(make_row(demo_targeting="25-54")).targeting_layers[0]
        self.assertEqual(layer.audience_name, "25-54")

    def test_each_shell_gets_a_fresh_id(self):
        row = make_row()
        self.assertNotEqual(build_shell(row).id, build_shell(row).id)


class CreativeTests(unittest.TestCase):
    def test_utm_term_is_added_to_absolute_urls_only(self):
        params = UTMParameters(term="spring")
        self.assertEqual(generate_utm_url("https://acme.test/shop?ref=a", params), "https://acme.test/shop?ref=a&utm_term=spring")
        self.assertEqual(generate_utm_url("https://acme.test/shop?utm_term=old", params), "https://acme.test/shop?utm_term=spring")
        self.assertEqual(generate_utm_url("acme.test/shop", params), "acme.test/shop")
        self.assertEqual(generate_utm_url("", params), "")
        self.assertEqual(generate_utm_url("https://acme.test/shop", UTMParameters()), "https://acme.test/shop")

    def test_landing_page_edit_recomputes_tracked_url_once(self):
        creative = create_creative_shell("Hero 15s")
        with mock.patch(
            "blocking_chart.parse_modules.shells.generate_utm_url",
            return_value="https://acme.test/?utm_term=x",
        ) as derive:
            creative.update(landing_page="https://acme.test/")
            self.assertEqual(derive.call_count, 1)
            self.assertEqual(creative.landing_page_with_utm, "https://acme.test/?utm_term=x")

            creative.update(landing_page_with_utm="https://acme.test/?custom=1")
            self.assertEqual(derive.call_count, 1)
            self.assertEqual(creative.landing_page_with_utm, "https://acme.test/?custom=1")

    def test_explicit_tracked_url_in_same_edit_is_kept(self):
        creative = create_creative_shell("Hero 15s")
        creative.update(landing_page="https://acme.test/", landing_page_with_utm="https://acme.test/?manual=1")
        self.assertEqual(creative.landing_page_with_utm, "https://acme.test/?manual=1")

    def test_unknown_fields_and_id_cannot_be_edited(self):
        creative = create_creative_shell("Hero 15s")
        with self.assertRaises(AttributeError):
            creative.update(colour="red")
        with self.assertRaises(AttributeError):
            creative.update(id="fixed")

    def test_duplicates_get_new_ids_and_independent_creatives(self):
        layer = create_targeting_layer("Parents", "LI-01")
        layer.creatives.append(create_creative_shell("Static 1", landing_page="https://acme.test/"))
        copy = duplicate_targeting_layer(layer, "Grandparents")
        self.assertNotEqual(copy.id, layer.id)
        self.assertEqual(copy.audience_name, "Grandparents")
        self.assertEqual(copy.line_item_name, "LI-01")
        self.assertNotEqual(copy.creatives[0].id, layer.creatives[0].id)
        copy.creatives[0].utm_parameters.term = "copy"
        self.assertIsNone(layer.creatives[0].utm_parameters.term)

        creative_copy = duplicate_creative_shell(layer.creatives[0], "Static 2")
        self.assertEqual(creative_copy.name, "Static 2")
        self.assertEqual(creative_copy.landing_page_with_utm, layer.creatives[0].landing_page_with_utm)


if __name__ == "__main__":
    unittest.main()
