#!/usr/bin/env python3
"""
Generates sample-data/blocking_chart_sample.xlsx, a messy media plan for
exercising blocking-chart file uploads.

Run from the repo root:
    python sample-data/generate_xlsx.py

Problems baked in:
  Sheet "Rate Card"
    - Vendor rate reference table that must not be picked by default
  Sheet "Q3 Blocking Chart"
    - Title and agency lines above the header row
    - Vertically merged channel cells (empty channel under the first row)
    - Merged channel column for a known tactic (row shifted one column left)
    - Bare channel separator rows, a flight calendar grid, a subtotal
    - No "working media budget" header; the backstop "Net Budget" column wins
  Sheet "Notes"
    - Free text
"""

from pathlib import Path

import openpyxl

OUTPUT = Path(__file__).parent / "blocking_chart_sample.xlsx"

wb = openpyxl.Workbook()

# ── Sheet 1: Rate Card ───────────────────────────────────────────────────────
rates = wb.active
rates.title = "Rate Card"
rates.append(["Channels", "Vendor", "Rates", "Variance"])
rates.append(["YouTube", "Google", "CPM $12", "5%"])
rates.append(["Meta", "Meta", "CPM $8", "3%"])

# ── Sheet 2: the blocking chart ──────────────────────────────────────────────
chart = wb.create_sheet("Q3 Blocking Chart")
rows = [
    ["Acme Q3 Launch"],
    ["Prepared by Media Team"],
    [],
    ["Channel", "Tactic", "Platform", "Objective", "Placements", "Optimization",
     "KPI", "Target Demo", "CPM", "Impressions", "Net Budget"],
    ["Digital Video"],
    ["Digital Video", "Online Video", "The Trade Desk", "Awareness", "Pre-Roll",
     "Completed Views", "VCR", "Adults 25-54", "$14.00", 1500000, 21000.0],
    [None, "CTV", "The Trade Desk", "Reach", "Connected TV",
     "Reach", "Frequency", "Adults 35+", "$28.00", 500000, 14000.0],
    ["Skippable", "YouTube", "Awareness", "In-Stream", "Views",
     "CPV", "Adults 18-49", "$10.00", 1200000, 12000.0],
    ["Paid Social"],
    ["Paid Social", "Instagram Reels", "Meta", "Engagement", "Reels",
     "ThruPlay", "CPE", "Beauty Seekers", "$9.50", 800000, 7600.0],
    ["Influencer", "Creator Whitelisting", "LTK", "Consideration", "In-Feed",
     "Clicks", "CTR", "Gen Z Creators", "$11.00", 400000, 4400.0],
    ["Subtotal", None, None, None, None, None, None, None, None, None, 59000.0],
    ["Flight", 7, 14, 21, 28],
]
for row in rows:
    chart.append(row)

# ── Sheet 3: Notes ───────────────────────────────────────────────────────────
notes = wb.create_sheet("Notes")
notes.append(["Budgets are net of agency fees."])

wb.save(OUTPUT)
print(f"Saved: {OUTPUT}")
