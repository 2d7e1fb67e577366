# rental_jobs/services/jobs.py
"""
Los cuatro jobs del servicio.
Los programados (contratos por vencer y limpieza) nunca lanzan: registran el
error y devuelven success=False. Los invocables lanzan JobError tipado.
"""
import asyncio
import math
from datetime import datetime
from typing import Any, AsyncIterable, List, Optional, Type

from pydantic import BaseModel, ValidationError

from rental_jobs import config
from rental_jobs.errors import InternalError, InvalidArgument, NotFound
from rental_jobs.infra.store import (
    APARTMENTS,
    CONTRACTS,
    NOTIFICATIONS,
    TRANSACTIONS,
    USERS,
    EntityStore,
    Record,
    StoreUnavailable,
)
from rental_jobs.models.entities import Contract, ContractStatus, User
from rental_jobs.models.notification import Notification, NotificationType
from rental_jobs.models.report import MonthlyReport, ReportPeriod, ReportSummary
from rental_jobs.models.requests import MonthlyReportIn, SendNotificationIn
from rental_jobs.models.results import CleanupResult, ExpiryScanResult, SendResult
from rental_jobs.security.policy import authorize, require_caller
from rental_jobs.services.aggregation import aggregate_transactions
from rental_jobs.services.fanout import (
    FanOutDispatcher,
    FanOutResult,
    NotificationTemplate,
    RecipientFilter,
    resolve_recipients,
)
from rental_jobs.services.joins import resolve_contract
from rental_jobs.services.push_relay import PushRelay
from rental_jobs.services.retention import PurgeInterrupted, purge_notifications
from rental_jobs.services.windows import Direction, compute_window, month_window, utcnow
from rental_jobs.utils.logger import get_logger

logger = get_logger(__name__)

EXPIRY_TITLE = "Contract Expiring Soon"
SECONDS_PER_DAY = 24 * 60 * 60


def _validate(model: Type[BaseModel], data: Any, message: str):
    if not isinstance(data, dict):
        raise InvalidArgument(message)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        fields = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})
        raise InvalidArgument(f"{message} (campos: {', '.join(fields)})") from e


async def _collect(records: AsyncIterable[Record]) -> List[Record]:
    return [record async for record in records]


def days_until(end: datetime, now: datetime) -> int:
    return math.ceil((end - now).total_seconds() / SECONDS_PER_DAY)


def expiry_message(details, days: int) -> str:
    return (
        f"{details.guestName}'s contract at {details.apartmentName}, "
        f"Room {details.roomNumber} expires in {days} days"
    )


# =========================
# Contratos por vencer (programado)
# =========================

async def check_expiring_contracts(
    store: EntityStore,
    now: Optional[datetime] = None,
    push: Optional[PushRelay] = None,
    lookahead_days: Optional[int] = None,
    concurrency: Optional[int] = None,
) -> ExpiryScanResult:
    now = now or utcnow()
    lookahead_days = config.EXPIRY_LOOKAHEAD_DAYS if lookahead_days is None else lookahead_days
    concurrency = config.FANOUT_CONCURRENCY if concurrency is None else concurrency
    window = compute_window(now, lookahead_days, Direction.FORWARD)
    dispatcher = FanOutDispatcher(store, push=push, concurrency=concurrency)

    try:
        # contratos y destinatarios son independientes: en paralelo
        contract_records, recipients = await asyncio.gather(
            _collect(store.query_range(
                CONTRACTS, "endDate", window, {"status": ContractStatus.ACTIVE.value},
            )),
            resolve_recipients(store, RecipientFilter()),
        )
        contracts = []
        for record in contract_records:
            try:
                contracts.append(Contract.model_validate(record))
            except ValidationError as e:
                logger.warning("Contrato %s ignorado, datos inválidos: %s", record.get("id"), e)

        joins = asyncio.Semaphore(max(1, concurrency))

        async def notify(contract: Contract) -> FanOutResult:
            async with joins:
                details = await resolve_contract(store, contract)
            template = NotificationTemplate(
                title=EXPIRY_TITLE,
                message=expiry_message(details, days_until(contract.endDate, now)),
                type=NotificationType.CONTRACT_EXPIRY.value,
                relatedId=contract.id,
            )
            return await dispatcher.dispatch(template, recipients, created_at=now)

        outcomes = await asyncio.gather(*(notify(c) for c in contracts), return_exceptions=True)
        errors = [o for o in outcomes if isinstance(o, BaseException)]
        if errors:
            raise errors[0]
    except StoreUnavailable as e:
        # lo ya escrito queda escrito; el log tiene que reflejarlo
        logger.error(
            "Error revisando contratos por vencer (%s notificaciones ya creadas): %s",
            dispatcher.created_count, e,
        )
        return ExpiryScanResult(
            success=False,
            notificationsCreated=dispatcher.created_count,
            error=InternalError.code,
        )

    total = FanOutResult()
    for outcome in outcomes:
        total.merge(outcome)

    logger.info(
        "Creadas %s notificaciones de vencimiento (%s contratos, %s escrituras fallidas)",
        len(total.created), len(contracts), len(total.failures),
    )
    return ExpiryScanResult(
        success=True,
        notificationsCreated=len(total.created),
        contractsExpiring=len(contracts),
        failedWrites=len(total.failures),
    )


# =========================
# Limpieza de notificaciones viejas (programado)
# =========================

async def cleanup_old_notifications(
    store: EntityStore,
    now: Optional[datetime] = None,
    retention_days: Optional[int] = None,
    batch_limit: Optional[int] = None,
) -> CleanupResult:
    now = now or utcnow()
    retention_days = config.NOTIFICATION_RETENTION_DAYS if retention_days is None else retention_days
    batch_limit = config.STORE_BATCH_LIMIT if batch_limit is None else batch_limit

    try:
        result = await purge_notifications(store, now, retention_days, batch_limit)
    except PurgeInterrupted as e:
        logger.error("Error limpiando notificaciones viejas: %s", e)
        return CleanupResult(success=False, notificationsDeleted=e.deleted, error=InternalError.code)
    except StoreUnavailable as e:
        logger.error("Error limpiando notificaciones viejas: %s", e)
        return CleanupResult(success=False, error=InternalError.code)

    return CleanupResult(success=True, notificationsDeleted=result.notificationsDeleted)


# =========================
# Reporte mensual (invocable)
# =========================

async def generate_monthly_report(store: EntityStore, caller_uid: Optional[str], data: Any) -> MonthlyReport:
    caller = require_caller(caller_uid)
    params = _validate(MonthlyReportIn, data, "Month and year are required")
    window = month_window(params.year, params.month)
    equals = {"apartmentId": params.apartmentId} if params.apartmentId else None

    async def apartment_lookup():
        if not params.apartmentId:
            return None
        return await store.get(APARTMENTS, params.apartmentId)

    try:
        aggregate, apartment = await asyncio.gather(
            aggregate_transactions(
                store.query_range(TRANSACTIONS, "date", window, equals),
                time_format=params.timeFormat,
            ),
            apartment_lookup(),
        )
    except (StoreUnavailable, ValidationError) as e:
        logger.error("Error generando el reporte mensual: %s", e)
        raise InternalError("Failed to generate monthly report") from e

    if apartment is not None:
        apartment = {k: v for k, v in apartment.items() if k != "partition"}

    return MonthlyReport(
        period=ReportPeriod(
            month=params.month,
            year=params.year,
            startDate=window.lower,
            endDate=window.upper,
        ),
        apartment=apartment,
        summary=ReportSummary(
            totalIncome=aggregate.totalIncome,
            totalExpense=aggregate.totalExpense,
            profitLoss=aggregate.profitLoss,
            transactionCount=aggregate.transactionCount,
        ),
        incomeByCategory=aggregate.incomeByCategory,
        expensesByCategory=aggregate.expensesByCategory,
        transactions=aggregate.items,
        generatedAt=utcnow(),
        generatedBy=caller,
    )


# =========================
# Notificación manual (invocable)
# =========================

async def send_push_notification(
    store: EntityStore,
    caller_uid: Optional[str],
    data: Any,
    push: PushRelay,
    now: Optional[datetime] = None,
) -> SendResult:
    caller = require_caller(caller_uid)
    params = _validate(SendNotificationIn, data, "userId, title, and message are required")

    try:
        sender, target = await asyncio.gather(
            store.get(USERS, caller),
            store.get(USERS, params.userId),
        )
    except StoreUnavailable as e:
        logger.error("Error enviando la notificación manual: %s", e)
        raise InternalError("Failed to send push notification") from e

    authorize(sender.get("role") if sender else None)
    if target is None:
        raise NotFound("Target user not found")
    target_user = User.model_validate(target)

    notification = Notification(
        userId=params.userId,
        title=params.title,
        message=params.message,
        type=params.type or NotificationType.GENERAL.value,
        relatedId=params.relatedId,
        isRead=False,
        createdAt=now or utcnow(),
    )
    try:
        key = await store.insert(NOTIFICATIONS, notification.to_entity())
    except StoreUnavailable as e:
        logger.error("Error enviando la notificación manual: %s", e)
        raise InternalError("Failed to send push notification") from e
    notification.id = key.id

    # el resultado del push no cambia la respuesta
    await push.deliver(target_user, notification)

    return SendResult(success=True, notificationId=key.id)
