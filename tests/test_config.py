from datetime import date
from pathlib import Path

import pytest

from smb_taxflow.config import (
    default_app_config,
    load_app_config,
    validate_forecast_months,
)
from smb_taxflow.models import ForecastAssumptions


def write_config(tmp_path: Path, body: str) -> Path:
    """Helper writing a TOML configuration file into tmp_path."""
    path = tmp_path / "smb_taxflow_config.toml"
    path.write_text(body, encoding="utf-8")
    return path


def test_load_app_config_full(tmp_path) -> None:
    """All sections are parsed; the data directory is relative to the file."""
    path = write_config(
        tmp_path,
        """
[business]
name = "Acme Traders"
gst_number = "27ABCDE1234F1Z5"
state_code = "27"

[session]
user_id = "owner-1"
ca_client_id = "client-9"

[fiscal_year]
start_date = "2025-04-01"
end_date = "2026-03-31"

[data]
directory = "records"

[forecast]
growth_rate = 8
expense_increase = 3.5
payment_delay_days = 45
forecast_months = 4

[reconciliation]
tolerance = 0.5

[display]
mode = "both"
decimals = 0

[logging]
level = "debug"
""",
    )

    cfg = load_app_config(str(path))

    assert cfg.business.name == "Acme Traders"
    assert cfg.business.currency == "INR"
    assert cfg.session.user_id == "owner-1"
    assert cfg.session.effective_user_id == "client-9"
    assert cfg.session.business_name == "Acme Traders"
    assert cfg.fiscal_year.start_date == date(2025, 4, 1)
    assert cfg.data_dir == (tmp_path / "records").resolve()
    assert cfg.forecast == ForecastAssumptions(
        growth_rate=8.0, expense_increase=3.5, payment_delay_days=45, forecast_months=4
    )
    assert cfg.reconciliation_tolerance == pytest.approx(0.5)
    assert cfg.display_mode == "both"
    assert cfg.decimals == 0
    assert cfg.log_level == "DEBUG"


def test_load_app_config_defaults(tmp_path) -> None:
    """An empty file yields documented defaults."""
    cfg = load_app_config(str(write_config(tmp_path, "")))

    assert cfg.session.user_id == "local"
    assert cfg.data_dir == (tmp_path / "data").resolve()
    assert cfg.forecast == ForecastAssumptions()
    assert cfg.reconciliation_tolerance == pytest.approx(0.01)
    assert cfg.display_mode == "table"
    assert cfg.fiscal_year.start_date.month == 4
    assert cfg.fiscal_year.end_date.month == 3


def test_load_app_config_missing_file(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_app_config(str(tmp_path / "nope.toml"))


@pytest.mark.parametrize(
    "body, message",
    [
        ("[forecast]\nforecast_months = 12\n", "forecast_months"),
        ("[forecast]\ngrowth_rate = 'fast'\n", "forecast.growth_rate"),
        ("[display]\nmode = 'pdf'\n", "display.mode"),
        ("[fiscal_year]\nstart_date = '2025-04-01'\n", "fiscal_year"),
        ("[fiscal_year]\nstart_date = '2025-04-01'\nend_date = '2024-03-31'\n", "before"),
        ("[reconciliation]\ntolerance = -1\n", "negative"),
        ("this is not toml", "Failed to parse"),
    ],
)
def test_load_app_config_invalid_values(tmp_path, body, message) -> None:
    path = write_config(tmp_path, body)

    with pytest.raises(ValueError, match=message):
        load_app_config(str(path))


def test_validate_forecast_months_bounds() -> None:
    assert validate_forecast_months(3) == 3
    assert validate_forecast_months(6) == 6
    with pytest.raises(ValueError):
        validate_forecast_months(2)
    with pytest.raises(ValueError):
        validate_forecast_months(7)


def test_default_app_config(tmp_path) -> None:
    cfg = default_app_config(tmp_path, user_id="u9")

    assert cfg.data_dir == tmp_path.resolve()
    assert cfg.session.user_id == "u9"
    assert cfg.forecast.forecast_months == 6
