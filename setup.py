from setuptools import setup


setup(
    name="blocking-chart",
    version="0.1.0",
    description="Local ingestion of messy media-plan blocking charts into normalized campaign shells",
    packages=["blocking_chart", "blocking_chart.parse_modules"],
    install_requires=[
        "pandas",
        "chardet",
        "openpyxl",
    ],
    extras_require={
        "excel-legacy": ["xlrd"],
        "ods": ["odfpy"],
        "all": ["xlrd", "odfpy"],
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "blocking-chart=blocking_chart.cli:main",
        ]
    },
)
