"""
Consultant profile routes — GET /api/me, PATCH /api/me/bank, POST /api/onboarding

GET /api/me provisions an identifier-less consultant row on first login, the
same row onboarding later completes or replaces with a placeholder.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from invoicedesk.auth import Session, get_session
from invoicedesk.database import get_db
from invoicedesk.errors import ForbiddenError
from invoicedesk.onboarding.schemas import BankDetailsRequest, ConsultantOut, OnboardingRequest
from invoicedesk.onboarding.service import (
    complete_onboarding,
    provision_consultant,
    to_consultant_out,
    update_bank_details,
)
from invoicedesk.results import unwrap

router = APIRouter(prefix="/api", tags=["onboarding"])
logger = logging.getLogger(__name__)


@router.get("/me", response_model=ConsultantOut)
async def get_me(
    session: Session = Depends(get_session),
    db: AsyncSession = Depends(get_db),
) -> ConsultantOut:
    """Current consultant profile. onboarded=false tells the UI to show setup."""
    consultant = await provision_consultant(db, session.email, session.display_name)
    return to_consultant_out(consultant)


@router.patch("/me/bank", response_model=ConsultantOut)
async def patch_my_bank_details(
    body: BankDetailsRequest,
    session: Session = Depends(get_session),
    db: AsyncSession = Depends(get_db),
) -> ConsultantOut:
    consultant = await provision_consultant(db, session.email, session.display_name)
    consultant = await update_bank_details(db, consultant, body)
    return to_consultant_out(consultant)


@router.post("/onboarding", response_model=ConsultantOut)
async def post_onboarding(
    body: OnboardingRequest,
    session: Session = Depends(get_session),
    db: AsyncSession = Depends(get_db),
) -> ConsultantOut:
    """
    Complete one-time setup.

    Returns:
        200: final consultant record
        403: FORBIDDEN — body email is not the signed-in address
        409: CONFLICT — identifier already registered to another account
    """
    if body.email != session.email:
        raise ForbiddenError("You can only complete onboarding for your own account").as_http()

    consultant = await unwrap(await complete_onboarding(db, body))
    return to_consultant_out(consultant)
