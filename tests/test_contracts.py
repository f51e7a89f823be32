from __future__ import annotations

import unittest
from pathlib import Path

from blocking_chart.contracts import CONTRACT_VERSIONS, build_contract, build_run_summary


class ContractTests(unittest.TestCase):
    def test_known_contracts_are_versioned(self):
        self.assertEqual(build_contract("blocking_chart.rows"), {"name": "blocking_chart.rows", "version": "1.0.0"})
        self.assertEqual(CONTRACT_VERSIONS["blocking_chart.shells"], "1.0.0")
        with self.assertRaises(KeyError):
            build_contract("blocking_chart.unknown")

    def test_run_summary_shape(self):
        summary = build_run_summary(
            tool="blocking-chart",
            script="shells",
            input_path=Path("plan.xlsx"),
            source="file",
            sheet_name="Q3 Blocking Chart",
            output_path=Path("out/shells.csv"),
            metrics={"rows_accepted": 4},
            warnings=["Multiple sheets found"],
        )
        self.assertEqual(summary["status"], "ok")
        self.assertEqual(summary["input_file"], "plan.xlsx")
        self.assertEqual(summary["input_source"], "file")
        self.assertEqual(summary["sheet_name"], "Q3 Blocking Chart")
        self.assertEqual(summary["output_file"], str(Path("out/shells.csv")))
        self.assertEqual(summary["warnings_count"], 1)
        self.assertEqual(summary["metrics"], {"rows_accepted": 4})
        self.assertTrue(summary["generated_at"].endswith("Z"))

    def test_run_summary_without_output(self):
        summary = build_run_summary(
            tool="blocking-chart", script="rows", input_path="<stdin>", source="paste", status="no_rows"
        )
        self.assertIsNone(summary["output_file"])
        self.assertIsNone(summary["sheet_name"])
        self.assertEqual(summary["input_source"], "paste")
        self.assertEqual(summary["warnings"], [])
        self.assertEqual(summary["metrics"], {})

    def test_unknown_source_or_status_is_rejected(self):
        with self.assertRaisesRegex(ValueError, "Unknown source"):
            build_run_summary(tool="blocking-chart", script="rows", input_path="x", source="clipboard")
        with self.assertRaisesRegex(ValueError, "Unknown run status"):
            build_run_summary(tool="blocking-chart", script="rows", input_path="x", source="file", status="done")


if __name__ == "__main__":
    unittest.main()
