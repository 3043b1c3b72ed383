"""
Fixtures for reporting tests: the sample company's February chart and
report metadata.
"""

from __future__ import annotations

from datetime import date

import pytest

from erp_engines.reconciliation import ReportPeriod, reconcile_chart
from erp_modules.reporting.config import ReportingConfig
from erp_modules.reporting.models import ReportMetadata, ReportType


@pytest.fixture
def february_period() -> ReportPeriod:
    return ReportPeriod(date(2024, 2, 1), date(2024, 2, 29))


@pytest.fixture
def february_chart(company_master, company_ledgers, february_period):
    return reconcile_chart(
        master=company_master,
        ledgers=company_ledgers,
        period=february_period,
        method="averageCost",
    )


@pytest.fixture
def reporting_config() -> ReportingConfig:
    return ReportingConfig.with_defaults()


@pytest.fixture
def make_metadata():
    def _make(report_type: ReportType = ReportType.TRIAL_BALANCE) -> ReportMetadata:
        return ReportMetadata(
            report_type=report_type,
            entity_name="Al Noor Trading",
            currency="SAR",
            generated_at="2024-03-01T09:00:00+00:00",
            period_start=date(2024, 2, 1),
            period_end=date(2024, 2, 29),
            valuation_method="averageCost",
        )

    return _make
