# SMB TaxFlow - GST, TDS & Cash-Flow toolkit for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
SMB TaxFlow
-----------

A Python-based tax and cash-flow toolkit designed for Indian Small and
Medium-sized Businesses (SMBs). The project provides a small business-rules
engine and a command-line interface on top of a directory of CSV records.

Main capabilities:
- GST computation with the CGST / SGST (or IGST) split,
- TDS withholding derived from vendor-linked rules, with a category report,
- the GST-3B return aggregate and the GSTR-3B summary card,
- a monthly cash-flow forecaster with reconstructed history,
- invoice total reconciliation,
- invoice and quotation CSV exports.

SMB TaxFlow separates computation (pure engines), configuration (TOML),
data access (CSV) and presentation (CLI), making it suitable for scripting,
automation and accountant workflows.


Version: 0.2.0

Usage:
    python -m smb_taxflow.cli --help
"""

__all__ = ["tax", "gst3b", "cashflow", "views", "io"]

__version__ = "0.2.0"
