# SMB TaxFlow - GST, TDS & Cash-Flow toolkit for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for SMB TaxFlow.

This module is responsible for:
- loading the main application configuration from a TOML file,
- validating the forecast assumptions and display options,
- exposing typed dataclasses used by the rest of the application.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for older Python
    import tomli as tomllib  # type: ignore[import]

from .context import SessionContext
from .models import MAX_FORECAST_MONTHS, MIN_FORECAST_MONTHS, ForecastAssumptions

DEFAULT_CONFIG_FILE = "smb_taxflow_config.toml"

DISPLAY_MODES: tuple[str, ...] = ("table", "csv", "both")
LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass(frozen=True)
class FiscalYear:
    """Represents a fiscal year with a start and end date."""

    start_date: date
    end_date: date


@dataclass(frozen=True)
class BusinessConfig:
    """
    Profile of the reporting business.

    ``state_code`` is the two-digit GST state code of the business
    registration. It is informational: interstate status is not derived
    from it (see gst3b.py).
    """

    name: str
    gst_number: Optional[str]
    state_code: Optional[str]
    currency: str


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for SMB TaxFlow.

    This aggregates:
    - the business profile and the session selection,
    - the fiscal year definition,
    - the data directory (CSV storage of business records),
    - default forecast assumptions,
    - the invoice reconciliation tolerance,
    - display and logging options.
    """

    business: BusinessConfig
    session: SessionContext
    fiscal_year: FiscalYear
    data_dir: Path
    forecast: ForecastAssumptions
    reconciliation_tolerance: float
    display_mode: str
    decimals: int
    log_level: str


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    """Return a top-level table, or an empty mapping if absent or malformed."""
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        return {}
    return section


def default_fiscal_year(today: Optional[date] = None) -> FiscalYear:
    """
    Indian fiscal year (1 April → 31 March) containing ``today``.

    Args:
        today: Reference date. Defaults to the current date.
    """
    ref = today or date.today()
    start_year = ref.year if ref.month >= 4 else ref.year - 1
    return FiscalYear(
        start_date=date(start_year, 4, 1),
        end_date=date(start_year + 1, 3, 31),
    )


def _parse_fiscal_year(config_data: Mapping[str, Any]) -> FiscalYear:
    """
    Extract and validate the fiscal year from raw TOML configuration data.

    The [fiscal_year] table is optional: when absent, the Indian fiscal year
    containing today's date is used.

    Raises:
        ValueError: if the dates are incomplete or invalid.
    """
    fiscal_data = config_data.get("fiscal_year")
    if fiscal_data is None:
        return default_fiscal_year()
    if not isinstance(fiscal_data, Mapping):
        raise ValueError("Config file [fiscal_year] must be a table.")

    try:
        start_raw = fiscal_data["start_date"]
        end_raw = fiscal_data["end_date"]
    except KeyError as exc:
        raise ValueError(
            "Config file is missing [fiscal_year].start_date or end_date."
        ) from exc

    try:
        start = date.fromisoformat(str(start_raw))
        end = date.fromisoformat(str(end_raw))
    except Exception as exc:  # noqa: BLE001
        raise ValueError(
            "Invalid fiscal year dates, expected YYYY-MM-DD format."
        ) from exc

    if end < start:
        raise ValueError("Fiscal year end_date cannot be before start_date.")

    return FiscalYear(start_date=start, end_date=end)


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_number(section: Mapping[str, Any], key: str, default: float, label: str) -> float:
    raw = section.get(key, default)
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Invalid value for '{label}.{key}' in the configuration. "
            "Expected a number."
        ) from exc


def validate_forecast_months(months: int) -> int:
    """
    Check that a forecast horizon is within the supported range.

    Raises:
        ValueError: if ``months`` is outside [MIN_FORECAST_MONTHS,
            MAX_FORECAST_MONTHS].
    """
    if not MIN_FORECAST_MONTHS <= months <= MAX_FORECAST_MONTHS:
        raise ValueError(
            f"forecast_months must be between {MIN_FORECAST_MONTHS} and "
            f"{MAX_FORECAST_MONTHS}, got {months}."
        )
    return months


def _parse_forecast(raw: Mapping[str, Any]) -> ForecastAssumptions:
    """Build default forecast assumptions from the [forecast] table."""
    section = _section(raw, "forecast")
    defaults = ForecastAssumptions()

    growth_rate = _parse_number(section, "growth_rate", defaults.growth_rate, "forecast")
    expense_increase = _parse_number(
        section, "expense_increase", defaults.expense_increase, "forecast"
    )
    delay = _parse_number(
        section, "payment_delay_days", defaults.payment_delay_days, "forecast"
    )
    months = _parse_number(
        section, "forecast_months", defaults.forecast_months, "forecast"
    )

    return ForecastAssumptions(
        growth_rate=growth_rate,
        expense_increase=expense_increase,
        payment_delay_days=int(delay),
        forecast_months=validate_forecast_months(int(months)),
    )


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the SMB TaxFlow application configuration from a TOML file.

    Expected top-level sections in the TOML file (all optional)
    ------------------------------------------------------------
    [business]
        name, gst_number, state_code, currency (default "INR").

    [session]
        user_id (default "local"), organization_id, ca_client_id.

    [fiscal_year]
        start_date / end_date (YYYY-MM-DD). Defaults to the Indian fiscal
        year (April → March) containing today.

    [data]
        directory: folder holding the CSV business records
        (default "data").

    [forecast]
        growth_rate, expense_increase, payment_delay_days and
        forecast_months (3 to 6).

    [reconciliation]
        tolerance: maximum accepted difference between an invoice's stored
        and recomputed totals (default 0.01).

    [display]
        mode ("table" | "csv" | "both") and decimals.

    [logging]
        level ("DEBUG" | "INFO" | "WARNING" | "ERROR").

    Notes
    -----
    All file paths in the TOML are resolved relative to the directory of
    the TOML file itself.

    Parameters
    ----------
    config_path:
        Path to the TOML configuration file. Defaults to
        ``smb_taxflow_config.toml`` in the current directory.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist.
    ValueError
        If a value is malformed or out of range.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILE).resolve()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent

    # 1) Business profile
    business_section = _section(raw, "business")
    business = BusinessConfig(
        name=str(business_section.get("name") or ""),
        gst_number=_optional_str(business_section.get("gst_number")),
        state_code=_optional_str(business_section.get("state_code")),
        currency=str(business_section.get("currency") or "INR"),
    )

    # 2) Session selection
    session_section = _section(raw, "session")
    session = SessionContext(
        user_id=str(session_section.get("user_id") or "local"),
        organization_id=_optional_str(session_section.get("organization_id")),
        ca_client_id=_optional_str(session_section.get("ca_client_id")),
        business_name=business.name,
    )

    # 3) Fiscal year
    fiscal_year = _parse_fiscal_year(raw)

    # 4) Data directory
    data_section = _section(raw, "data")
    data_dir = (base_dir / str(data_section.get("directory") or "data")).resolve()

    # 5) Forecast defaults
    forecast = _parse_forecast(raw)

    # 6) Reconciliation
    reconciliation_section = _section(raw, "reconciliation")
    tolerance = _parse_number(reconciliation_section, "tolerance", 0.01, "reconciliation")
    if tolerance < 0:
        raise ValueError("reconciliation.tolerance cannot be negative.")

    # 7) Display options
    display_section = _section(raw, "display")
    display_mode = str(display_section.get("mode", "table"))
    if display_mode not in DISPLAY_MODES:
        raise ValueError(
            f"Invalid display.mode {display_mode!r}. "
            f"Expected one of: {', '.join(DISPLAY_MODES)}."
        )
    try:
        decimals = int(display_section.get("decimals", 2))
    except (TypeError, ValueError):
        decimals = 2

    # 8) Logging
    logging_section = _section(raw, "logging")
    log_level = str(logging_section.get("level", "WARNING")).upper()
    if log_level not in LOG_LEVELS:
        log_level = "WARNING"

    return AppConfig(
        business=business,
        session=session,
        fiscal_year=fiscal_year,
        data_dir=data_dir,
        forecast=forecast,
        reconciliation_tolerance=tolerance,
        display_mode=display_mode,
        decimals=decimals,
        log_level=log_level,
    )


def default_app_config(data_dir: Path, user_id: str = "local") -> AppConfig:
    """
    Configuration used when no TOML file is available.

    Every option takes its documented default; only the data directory and
    the session user are provided.
    """
    return AppConfig(
        business=BusinessConfig(name="", gst_number=None, state_code=None, currency="INR"),
        session=SessionContext(user_id=user_id),
        fiscal_year=default_fiscal_year(),
        data_dir=Path(data_dir).resolve(),
        forecast=ForecastAssumptions(),
        reconciliation_tolerance=0.01,
        display_mode="table",
        decimals=2,
        log_level="WARNING",
    )
