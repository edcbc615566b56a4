"""PaymentApplicationService — transaction boundary around PaymentWorkflow.

submit / approve / reject each run in one unit of work and commit here.
The owner is notified after commit; delivery failures are logged only.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.cm_account.domain.ledger import AccountLedger
from src.cm_account.infrastructure.persistence import AccountRepository
from src.cm_common.database import commit_or_rollback
from src.cm_common.enums import NotificationType, PaymentStatus, PaymentType
from src.cm_common.money import xu_to_display
from src.cm_notification.domain.dispatch import NotificationDispatcher, NotificationSink
from src.cm_payment.application.schemas import (
    AdminPaymentItem,
    AdminPaymentPage,
    PaymentPage,
    PaymentRequestItem,
    PaymentStatsResponse,
)
from src.cm_payment.domain.models import BankInfo, PaymentRequest
from src.cm_payment.domain.repository import PaymentRepositoryProtocol
from src.cm_payment.domain.workflow import PaymentWorkflow
from src.cm_payment.infrastructure.persistence import PaymentRepository

logger = logging.getLogger(__name__)

_TYPE_LABEL = {PaymentType.DEPOSIT.value: "nạp", PaymentType.WITHDRAWAL.value: "rút"}


class PaymentApplicationService:
    def __init__(
        self,
        workflow: PaymentWorkflow | None = None,
        repo: PaymentRepositoryProtocol | None = None,
        notifier: NotificationSink | None = None,
    ) -> None:
        self._repo: PaymentRepositoryProtocol = repo or PaymentRepository()
        if workflow is None:
            accounts = AccountRepository()
            workflow = PaymentWorkflow(AccountLedger(accounts), accounts, self._repo)
        self._workflow = workflow
        self._notifier: NotificationSink = notifier or NotificationDispatcher()

    async def submit(
        self,
        db: AsyncSession,
        user_id: str,
        type: str,
        amount: int,
        bank_info: BankInfo | None = None,
        note: str | None = None,
    ) -> PaymentRequestItem:
        async with commit_or_rollback(db, "Payment request submission"):
            request = await self._workflow.submit(db, user_id, type, amount, bank_info, note)
        logger.info(
            "Payment request %s submitted: user=%s type=%s amount=%d",
            request.id, user_id, type, amount,
        )
        return PaymentRequestItem.from_domain(request)

    async def approve(
        self, db: AsyncSession, request_id: str, admin_id: str, admin_note: str | None = None
    ) -> PaymentRequestItem:
        async with commit_or_rollback(db, f"Approval of {request_id}"):
            request = await self._workflow.approve(db, request_id, admin_id, admin_note)
        logger.info(
            "Payment request %s approved by %s: user=%s type=%s amount=%d",
            request.id, admin_id, request.user_id, request.type, request.amount,
        )
        await self._notify_owner(request)
        return PaymentRequestItem.from_domain(request)

    async def reject(
        self, db: AsyncSession, request_id: str, admin_id: str, admin_note: str | None = None
    ) -> PaymentRequestItem:
        async with commit_or_rollback(db, f"Rejection of {request_id}"):
            request = await self._workflow.reject(db, request_id, admin_id, admin_note)
        logger.info("Payment request %s rejected by %s", request.id, admin_id)
        await self._notify_owner(request)
        return PaymentRequestItem.from_domain(request)

    async def _notify_owner(self, request: PaymentRequest) -> None:
        label = _TYPE_LABEL.get(request.type, request.type)
        amount = xu_to_display(request.amount)
        if request.status == PaymentStatus.APPROVED.value:
            title = f"Yêu cầu {label} tiền đã được duyệt"
            message = f"Yêu cầu {label} {amount} của bạn đã được duyệt."
        else:
            title = f"Yêu cầu {label} tiền bị từ chối"
            message = f"Yêu cầu {label} {amount} của bạn đã bị từ chối."
        if request.admin_note:
            message += f" Ghi chú: {request.admin_note}"
        await self._notifier.notify(
            request.user_id, NotificationType.PAYMENT.value, title, message, request.id
        )

    async def list_mine(
        self, db: AsyncSession, user_id: str, type: str | None, page: int, limit: int
    ) -> PaymentPage:
        requests, total = await self._repo.list_by_user(
            db, user_id, type, (page - 1) * limit, limit
        )
        return PaymentPage(
            items=[PaymentRequestItem.from_domain(r) for r in requests],
            total=total,
            page=page,
            limit=limit,
        )

    async def list_all(
        self,
        db: AsyncSession,
        type: str | None,
        status: str | None,
        sort: str,
        page: int,
        limit: int,
    ) -> AdminPaymentPage:
        views, total = await self._repo.list_requests(
            db, type, status, sort, (page - 1) * limit, limit
        )
        return AdminPaymentPage(
            items=[AdminPaymentItem.from_view(v) for v in views],
            total=total,
            page=page,
            limit=limit,
        )

    async def get_stats(self, db: AsyncSession) -> PaymentStatsResponse:
        return PaymentStatsResponse.from_domain(await self._repo.get_stats(db))
