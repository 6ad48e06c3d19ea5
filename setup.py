from setuptools import setup


setup(
    name="abono-sheets",
    version="0.1.0",
    description="Header discovery and row extraction for BBVA and BCP disbursement (abono) spreadsheets",
    packages=["abono_sheets"],
    python_requires=">=3.9",
    install_requires=[
        "pandas",
        "openpyxl",
        "xlrd",
        "streamlit",
        "requests",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "abono-sheets=abono_sheets.cli:main",
        ]
    },
)
