import tempfile
import unittest
from pathlib import Path
from unittest import mock

from openpyxl import Workbook

from blocking_chart.loader import choose_best_sheet, list_sheets, load_grid, read_text
from blocking_chart.parser import parse_file

HEADER = ["Channel", "Tactic", "Platform", "Objective", "Placements", "Target Demo", "Impressions", "Net Budget"]


def write_chart_workbook(path: Path) -> Path:
    wb = Workbook()
    rates = wb.active
    rates.title = "Rate Card"
    rates.append(["Channels", "Vendor", "Rates"])
    rates.append(["YouTube", "Google", "CPM $12"])
    chart = wb.create_sheet("Q3 Blocking Chart")
    chart.append(["Acme Q3 Launch"])
    chart.append([])
    chart.append(HEADER)
    chart.append(["Digital Video", "Online Video", "The Trade Desk", "Awareness", "Pre-Roll", "Adults 25-54", 1500000, 21000])
    chart.append([None, "CTV", "The Trade Desk", "Reach", "Connected TV", "Adults 35+", 500000, 14000])
    chart.append(["Subtotal", None, None, None, None, None, None, 35000])
    wb.create_sheet("Notes").append(["Budgets are net of agency fees."])
    wb.save(path)
    return path


class SheetChoiceTests(unittest.TestCase):
    def test_preference_order(self):
        self.assertEqual(choose_best_sheet(["Data", "Chart v2", "Q3 BLOCKING"]), "Q3 BLOCKING")
        self.assertEqual(choose_best_sheet(["Raw Data", "Media Chart"]), "Media Chart")
        self.assertEqual(choose_best_sheet(["Notes", "raw data"]), "raw data")
        self.assertEqual(choose_best_sheet(["Sheet1", "Sheet2"]), "Sheet1")
        self.assertIsNone(choose_best_sheet([]))


class WorkbookLoaderTests(unittest.TestCase):
    def test_best_sheet_is_loaded_as_raw_grid(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_chart_workbook(Path(tmpdir) / "plan.xlsx")
            result = load_grid(path)
        self.assertEqual(result["detected_format"], "xlsx")
        self.assertEqual(result["sheet_name"], "Q3 Blocking Chart")
        self.assertEqual(result["sheet_names"], ["Rate Card", "Q3 Blocking Chart", "Notes"])
        self.assertIn(HEADER, result["cells"])
        self.assertEqual(result["cells"][0][0], "Acme Q3 Launch")
        self.assertTrue(all(isinstance(cell, str) for row in result["cells"] for cell in row))
        self.assertTrue(result["warnings"])

    def test_parse_file_runs_the_engine_on_the_chosen_sheet(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_chart_workbook(Path(tmpdir) / "plan.xlsx")
            result = parse_file(path)
        rows = result["rows"]
        self.assertEqual([row.tactic for row in rows], ["Online Video", "CTV"])
        self.assertEqual(rows[1].channel, "Digital Video")
        self.assertEqual(rows[0].demo_targeting, "Adults 25-54")
        self.assertEqual(float(rows[0].total_working_media_budget), 21000.0)
        self.assertEqual([item.reason for item in result["skipped"]], ["TOTAL_ROW"])
        self.assertEqual(result["sheet_name"], "Q3 Blocking Chart")

    def test_explicit_sheet_and_unknown_sheet(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_chart_workbook(Path(tmpdir) / "plan.xlsx")
            self.assertEqual(load_grid(path, sheet_name="Notes")["cells"], [["Budgets are net of agency fees."]])
            with self.assertRaisesRegex(ValueError, "not found"):
                load_grid(path, sheet_name="Missing")
            self.assertEqual(list_sheets(path), ["Rate Card", "Q3 Blocking Chart", "Notes"])

    def test_corrupt_workbook_raises_single_value_error(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "broken.xlsx"
            path.write_bytes(b"this is not a zip archive")
            with self.assertRaisesRegex(ValueError, "Could not open workbook"):
                load_grid(path)

    def test_missing_xlrd_raises_clear_importerror(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "legacy.xls"
            path.write_bytes(b"not-a-real-xls")

            original_import = __import__

            def fake_import(name, globals=None, locals=None, fromlist=(), level=0):
                if name == "xlrd":
                    raise ImportError("simulated missing xlrd")
                return original_import(name, globals, locals, fromlist, level)

            with mock.patch("builtins.__import__", side_effect=fake_import):
                with self.assertRaisesRegex(ImportError, r"\.xls files require xlrd"):
                    load_grid(path)

    def test_missing_odfpy_raises_clear_importerror(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "sheet.ods"
            path.write_bytes(b"not-a-real-ods")

            original_import = __import__

            def fake_import(name, globals=None, locals=None, fromlist=(), level=0):
                if name == "odf":
                    raise ImportError("simulated missing odfpy")
                return original_import(name, globals, locals, fromlist, level)

            with mock.patch("builtins.__import__", side_effect=fake_import):
                with self.assertRaisesRegex(ImportError, r"\.ods files require odfpy"):
                    load_grid(path)


class TextLoaderTests(unittest.TestCase):
    def test_ragged_csv_keeps_every_row(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "plan.csv"
            path.write_text(
                "Acme plan\n"
                "Channel,Tactic,Platform,Objective,Placements,Budget\n"
                'Search,Brand Terms,Google Ads,Conversions,SERP,"$2,500.00"\n',
                encoding="utf-8",
            )
            result = load_grid(path)
            rows = parse_file(path)["rows"]
        self.assertEqual(result["delimiter"], ",")
        self.assertEqual(result["original_rows"], 3)
        self.assertEqual(result["original_columns"], 6)
        self.assertEqual(result["cells"][0][0], "Acme plan")
        self.assertEqual(result["cells"][2][5], "$2,500.00")
        self.assertEqual(rows[0].total_working_media_budget, "2500.00")

    def test_blank_csv_lines_keep_their_row_index(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "plan.csv"
            path.write_text(
                "Channel,Tactic,Platform,Objective,Placements,Budget\n"
                "\n"
                "Search,Brand Terms,Google Ads,Conversions,SERP,2500\n",
                encoding="utf-8",
            )
            result = load_grid(path)
            rows = parse_file(path)["rows"]
        self.assertEqual(result["original_rows"], 3)
        self.assertEqual(result["cells"][1], [""] * 6)
        self.assertEqual(rows[0].source_row, 2)

    def test_tsv_text_keeps_accents(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "plan.tsv"
            path.write_text("Channel\tTactic\nCaf\u00e9 Social\tReels\n", encoding="utf-8")
            result = load_grid(path)
            self.assertEqual(result["delimiter"], "\t")
            self.assertEqual(result["cells"], [["Channel", "Tactic"], ["Caf\u00e9 Social", "Reels"]])
            self.assertIn("Caf\u00e9", read_text(path))

    def test_missing_and_unsupported_files(self):
        with self.assertRaises(FileNotFoundError):
            load_grid("/nonexistent/plan.csv")
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "plan.pdf"
            path.write_bytes(b"%PDF")
            with self.assertRaisesRegex(ValueError, "Unsupported format"):
                load_grid(path)


if __name__ == "__main__":
    unittest.main()
