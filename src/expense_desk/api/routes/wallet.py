"""Wallet and advance payment endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from expense_desk.api.dependencies import CurrentActor, DbSession
from expense_desk.api.schemas import (
    ErrorResponse,
    TransactionComplete,
    TransactionCreate,
    TransactionDetailResponse,
    TransactionResponse,
    WalletResponse,
    WalletUsedResponse,
)
from expense_desk.services.wallet_service import WalletService

router = APIRouter(tags=["wallet"])


@router.get(
    "/wallet",
    response_model=WalletResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_wallet(db: DbSession, actor: CurrentActor) -> WalletResponse:
    """This month's advances, wallet debits and remaining balance."""
    wallet = await WalletService(db).get_wallet(actor.principal_id)
    return WalletResponse.model_validate(wallet)


@router.get(
    "/wallet/used",
    response_model=WalletUsedResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_wallet_used(db: DbSession, actor: CurrentActor) -> WalletUsedResponse:
    used = await WalletService(db).get_wallet_used(actor.principal_id)
    return WalletUsedResponse.model_validate(used)


@router.post(
    "/transactions",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
async def create_transaction(
    db: DbSession,
    actor: CurrentActor,
    payload: TransactionCreate,
) -> TransactionResponse:
    transaction = await WalletService(db).create_transaction(
        actor,
        payload.receiver_id,
        payload.amount,
        payment_method=payload.payment_method,
        description=payload.description,
    )
    await db.commit()
    return TransactionResponse.model_validate(transaction)


@router.get(
    "/transactions/{transaction_id}",
    response_model=TransactionDetailResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_transaction(
    db: DbSession,
    actor: CurrentActor,
    transaction_id: Annotated[UUID, Path()],
) -> TransactionDetailResponse:
    detail = await WalletService(db).get_transaction(transaction_id, actor)
    return TransactionDetailResponse.model_validate(detail)


@router.post(
    "/transactions/{transaction_id}/complete",
    response_model=TransactionResponse,
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def complete_transaction(
    db: DbSession,
    actor: CurrentActor,
    transaction_id: Annotated[UUID, Path()],
    payload: TransactionComplete,
) -> TransactionResponse:
    """Mark an advance paid so it credits the receiver's wallet."""
    transaction = await WalletService(db).complete_transaction(
        transaction_id, actor, payment_method=payload.payment_method
    )
    await db.commit()
    return TransactionResponse.model_validate(transaction)


@router.post(
    "/transactions/{transaction_id}/cancel",
    response_model=TransactionResponse,
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def cancel_transaction(
    db: DbSession,
    actor: CurrentActor,
    transaction_id: Annotated[UUID, Path()],
) -> TransactionResponse:
    transaction = await WalletService(db).cancel_transaction(transaction_id, actor)
    await db.commit()
    return TransactionResponse.model_validate(transaction)
