"""Reporting endpoints - read-only"""

from typing import List

from fastapi import APIRouter, Depends, Query

from coop_ledger.api.dependencies import get_reporting_service
from coop_ledger.api.v1.schemas import BenefitShareSchema, FinancialSummaryResponse, MonthlyReportResponse
from coop_ledger.services.reporting import ReportingService

router = APIRouter(prefix="/cooperatives/{cooperative_id}/reports")


@router.get("/summary", response_model=FinancialSummaryResponse)
def financial_summary(reports: ReportingService = Depends(get_reporting_service)):
    return FinancialSummaryResponse.model_validate(reports.financial_summary())


@router.get("/monthly/{year}/{month}", response_model=MonthlyReportResponse)
def monthly_report(year: int, month: int, reports: ReportingService = Depends(get_reporting_service)):
    return MonthlyReportResponse.model_validate(reports.monthly_report(year, month))


@router.get("/benefits", response_model=List[BenefitShareSchema])
def benefit_distribution(
    total_profit: int = Query(..., description="Profit to share, in minor units"),
    reports: ReportingService = Depends(get_reporting_service),
):
    return [BenefitShareSchema.model_validate(s) for s in reports.benefit_distribution(total_profit)]
