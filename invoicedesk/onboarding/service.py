"""
service.py — First-login provisioning and the onboarding merge.

Onboarding binds an authenticated address to a consultant identifier:

  1. lock the consultant row for the submitted identifier
  2. placeholder (or already ours): delete our own identifier-less row first,
     flush, then move our address and profile onto the identifier's row
  3. bound to another real address: IdentifierConflict, nothing written
  4. no row for the identifier: write the identifier onto our own row

The delete is flushed before the update so the unique email constraint never
sees two rows with the same address. Everything runs in the request
transaction; a concurrent claim for the same identifier blocks on the row lock.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from invoicedesk import store
from invoicedesk.errors import ConflictError, IdentifierConflict
from invoicedesk.models.consultant import ConsultantORM
from invoicedesk.onboarding.schemas import BankDetailsRequest, ConsultantOut, OnboardingRequest
from invoicedesk.results import Err, Ok, Result

logger = logging.getLogger(__name__)

BANK_FIELDS = ("bank_beneficiary", "bank_name", "bank_account", "bank_ifsc")


def is_onboarded(consultant: ConsultantORM) -> bool:
    """A profile is complete once it has an identifier, a PAN and bank details."""
    return bool(
        consultant.consultant_id
        and consultant.pan
        and all(getattr(consultant, field) for field in BANK_FIELDS)
    )


def to_consultant_out(consultant: ConsultantORM) -> ConsultantOut:
    out = ConsultantOut.model_validate(consultant)
    return out.model_copy(update={"onboarded": is_onboarded(consultant)})


def _default_name(email: str, display_name: Optional[str] = None) -> str:
    return display_name or email.split("@", 1)[0]


async def provision_consultant(
    db: AsyncSession,
    email: str,
    display_name: Optional[str] = None,
) -> ConsultantORM:
    """
    Return the caller's consultant row, creating an identifier-less one on first
    login. Onboarding later either fills it in or replaces it with a placeholder.
    """
    consultant = await store.get_consultant_by_email(db, email)
    if consultant is not None:
        return consultant
    consultant = ConsultantORM(email=email, name=_default_name(email, display_name))
    await store.add_consultant(db, consultant)
    logger.info("Provisioned consultant row on first login id=%s", consultant.id)
    return consultant


def _apply_onboarding(consultant: ConsultantORM, payload: OnboardingRequest) -> None:
    if payload.name:
        consultant.name = payload.name
    elif not consultant.name or consultant.name == consultant.consultant_id:
        consultant.name = _default_name(payload.email)
    consultant.pan = payload.pan
    consultant.gstin = payload.gstin
    for field in BANK_FIELDS:
        setattr(consultant, field, getattr(payload, field))


async def complete_onboarding(
    db: AsyncSession,
    payload: OnboardingRequest,
) -> Result[ConsultantORM]:
    """
    Merge submitted onboarding data into the consultant table.

    Returns:
        Ok(consultant) — the final record (is_admin included, never user-set)
        Err(IdentifierConflict) — identifier belongs to another real account
        Err(ConflictError) — caller is already bound to a different identifier
    """
    email = payload.email
    consultant_id = payload.consultant_id

    target = await store.get_consultant_by_id(db, consultant_id, lock=True)

    if target is not None:
        if not target.is_placeholder and target.email != email:
            logger.warning("Onboarding conflict consultant_id=%s", consultant_id)
            return Err(IdentifierConflict(
                [consultant_id],
                f"Consultant ID {consultant_id} is already registered to another account. "
                "Please contact your admin.",
            ))

        if target.email != email:
            own = await store.get_consultant_by_email(db, email, lock=True)
            if own is not None:
                if own.consultant_id and own.consultant_id != consultant_id:
                    return Err(ConflictError(
                        f"Your account is already registered as {own.consultant_id}. "
                        "Please contact your admin."
                    ))
                # Keep an admin's privilege when the placeholder absorbs their login row
                was_admin = own.is_admin
                await store.delete_consultant(db, own)
                if was_admin:
                    target.is_admin = True
            target.email = email

        _apply_onboarding(target, payload)
        await db.flush()
        logger.info("Onboarding claimed consultant_id=%s", consultant_id)
        return Ok(target)

    own = await store.get_consultant_by_email(db, email, lock=True)
    if own is None:
        own = ConsultantORM(email=email)
        db.add(own)
    elif own.consultant_id and own.consultant_id != consultant_id:
        return Err(ConflictError(
            f"Your account is already registered as {own.consultant_id}. "
            "Please contact your admin."
        ))

    own.consultant_id = consultant_id
    _apply_onboarding(own, payload)
    await db.flush()
    logger.info("Onboarding completed consultant_id=%s", consultant_id)
    return Ok(own)


async def update_bank_details(
    db: AsyncSession,
    consultant: ConsultantORM,
    payload: BankDetailsRequest,
) -> ConsultantORM:
    for field in BANK_FIELDS:
        setattr(consultant, field, getattr(payload, field))
    await db.flush()
    logger.info("Bank details updated consultant_id=%s", consultant.consultant_id)
    return consultant
