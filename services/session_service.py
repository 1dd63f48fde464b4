"""
Sales session: the operations available to one authenticated user.

A SalesSession wires the draft store, workflow engine, aggregation view and
synchronizer for a single actor, publishes user-facing notifications, and
runs the background loops while started:
- manager queue refresh (users who can view all sales)
- draft reconciliation
- remote synchronization

All state lives in the injected key-value store; the session itself only holds
the regression seen-set, the sync failure ledger and the last queue snapshot.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional

from domain.errors import RemoteUnavailable
from domain.sale import CustomerData, Sale, SaleStatus
from domain.time import utc_now
from domain.user import Actor, RolePermissionsMap
from repositories.draft_repository import DraftRepository
from repositories.kv_store import KeyValueStore
from repositories.remote_repository import ConnectionStatus, RemoteStore
from repositories.sale_repository import SaleRepository
from services.aggregation_service import AggregationView, DashboardStats, RegressionMonitor, SaleScope
from services.autosave_service import AUTOSAVE_QUIET_SECONDS, DraftAutosaver
from services.config import EngineConfig
from services.draft_service import DraftStore
from services.notification_service import NotificationType, Notifier
from services.polling_service import SingleFlightLoop
from services.profile_service import ProfileDirectory
from services.sync_service import SyncReport, Synchronizer
from services.upload_service import DocumentUploader
from services.workflow_service import WorkflowEngine

logger = logging.getLogger(__name__)


class SalesSession:
    def __init__(
        self,
        actor: Actor,
        store: KeyValueStore,
        remote: RemoteStore,
        *,
        config: Optional[EngineConfig] = None,
        permissions: Optional[RolePermissionsMap] = None,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], datetime] = utc_now,
        autosave_quiet_seconds: float = AUTOSAVE_QUIET_SECONDS,
    ) -> None:
        self.actor = actor
        self.config = config or EngineConfig()
        self.notifier = notifier or Notifier()

        sales = SaleRepository(store)
        self.drafts = DraftStore(actor, DraftRepository(store), sales, clock=clock)
        self.workflow = WorkflowEngine(sales, permissions=permissions, clock=clock)
        self.view = AggregationView(sales, permissions=permissions, clock=clock)
        self.monitor = RegressionMonitor(on_alert=self._alert_regression)
        self.synchronizer = Synchronizer(
            remote,
            item_timeout=self.config.remote_timeout_seconds,
            max_attempts=self.config.max_sync_attempts,
        )
        self.profiles = ProfileDirectory(
            remote,
            store,
            timeout=self.config.remote_timeout_seconds,
            probe_timeout=self.config.probe_timeout_seconds,
        )
        self.uploader = DocumentUploader(
            remote,
            self.config.storage_bucket,
            timeout=self.config.remote_timeout_seconds,
            clock=clock,
        )

        self._permissions = permissions
        self._autosave_quiet_seconds = autosave_quiet_seconds
        self._autosaver: Optional[DraftAutosaver] = None
        self._loops: List[SingleFlightLoop] = []
        self.connection: Optional[ConnectionStatus] = None
        self.directory: List[Actor] = []
        self.queue: List[Sale] = []

    @property
    def can_view_all(self) -> bool:
        return self.actor.can_view_all(self._permissions)

    @property
    def started(self) -> bool:
        return bool(self._loops)

    def _alert_regression(self, sale: Sale) -> None:
        self.notifier.notify(
            f"ALERTA: A venda #{sale.id} retornou para análise após aprovação prévia!",
            NotificationType.WARNING,
        )

    # Drafts

    def list_drafts(self) -> List[Sale]:
        return self.drafts.list_drafts()

    def save_draft(self, customer_data: CustomerData, draft_id: Optional[str] = None) -> Optional[Sale]:
        return self.drafts.save_draft(customer_data, draft_id=draft_id)

    def delete_draft(self, draft_id: str) -> bool:
        if self._autosaver is not None and self._autosaver.draft_id == draft_id:
            self.close_editor()
        deleted = self.drafts.delete_draft(draft_id)
        if deleted:
            self.notifier.notify("Rascunho excluído.", NotificationType.INFO)
        return deleted

    def edit_draft(self, customer_data: CustomerData, draft_id: Optional[str] = None) -> DraftAutosaver:
        """
        Autosave entry point for an open form; must run inside the event loop.

        Opening a different draft (or a submitted sale) replaces the current
        autosaver. Edits on a submitted sale are never autosaved.
        """

        current = self._autosaver
        if current is None or (draft_id is not None and current.draft_id != draft_id):
            self.close_editor()
            current = DraftAutosaver(
                self.drafts,
                draft_id=draft_id,
                quiet_seconds=self._autosave_quiet_seconds,
            )
            self._autosaver = current
        current.edit(customer_data)
        return current

    def close_editor(self) -> None:
        """Drop any pending autosave for the open form."""

        if self._autosaver is not None:
            self._autosaver.cancel()
            self._autosaver = None

    # Workflow

    def submit_sale(self, customer_data: CustomerData, sale_id: Optional[str] = None) -> Sale:
        """
        Submit (or resubmit) a form. When no id is given, the draft currently
        open in the editor is the one promoted.
        """

        if sale_id is None and self._autosaver is not None:
            sale_id = self._autosaver.draft_id

        sale = self.workflow.submit_sale(self.actor, self.drafts, customer_data, sale_id=sale_id)
        self.close_editor()
        self.notifier.notify("Ficha enviada com sucesso!", NotificationType.SUCCESS)
        return sale

    def transition(
        self,
        sale_id: str,
        target_status: SaleStatus,
        reason: Optional[str] = None,
        seller_id: Optional[str] = None,
    ) -> Sale:
        updated = self.workflow.transition(
            self.actor, sale_id, SaleStatus(target_status), reason, seller_id=seller_id
        )
        self.notifier.notify(
            f"Status da venda #{sale_id} atualizado para {updated.status.value}.",
            NotificationType.SUCCESS,
        )
        self.refresh_queue()
        return updated

    # Views

    def default_scope(self) -> SaleScope:
        return SaleScope.ALL if self.can_view_all else SaleScope.OWN

    def list_sales(self, scope: SaleScope = SaleScope.OWN, seller_id: Optional[str] = None) -> List[Sale]:
        return self.view.list_sales(self.actor, scope, seller_id=seller_id, monitor=self.monitor)

    def aggregate(self, scope: Optional[SaleScope] = None) -> DashboardStats:
        return self.view.aggregate(self.actor, scope or self.default_scope(), monitor=self.monitor)

    def refresh_queue(self) -> List[Sale]:
        scope = SaleScope.MANAGER_QUEUE if self.can_view_all else SaleScope.OWN
        self.queue = self.list_sales(scope)
        return self.queue

    def reconcile(self) -> int:
        return self.drafts.purge_stale()

    # Remote

    async def sync_now(self) -> SyncReport:
        sales = self.view.list_sales(self.actor, self.default_scope())
        report = await self.synchronizer.push(sales)
        if report.failed:
            self.notifier.notify(
                f"{report.failed} venda(s) não sincronizada(s). Nova tentativa no próximo ciclo.",
                NotificationType.WARNING,
            )
        return report

    async def upload_document(
        self,
        field: str,
        filename: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> str:
        self.notifier.notify(f"Enviando {filename} para o servidor...", NotificationType.INFO)
        try:
            url = await self.uploader.upload(self.actor.user_id, field, filename, data, content_type)
        except RemoteUnavailable as exc:
            self.notifier.notify(f"Erro ao enviar arquivo: {exc}", NotificationType.WARNING)
            raise
        self.notifier.notify(f"Arquivo {filename} enviado com sucesso!", NotificationType.SUCCESS)
        return url

    # Lifecycle

    async def _refresh_queue_job(self) -> None:
        self.refresh_queue()

    async def _reconcile_job(self) -> None:
        self.reconcile()

    async def _sync_job(self) -> None:
        await self.sync_now()

    async def start(self) -> None:
        """
        Probe connectivity, load the profile directory, run an eager sync,
        then start the background loops. Remote failures degrade to
        local-only mode and never prevent the session from starting.
        """

        if self.started:
            return

        self.connection = await self.profiles.probe()
        if not self.connection.is_connected:
            self.notifier.notify("Erro ao conectar ao Supabase. Verifique sua conexão.", NotificationType.WARNING)

        self.directory = await self.profiles.load()
        self.refresh_queue()
        await self.sync_now()

        if self.can_view_all:
            self._loops.append(
                SingleFlightLoop("queue_refresh", self.config.queue_refresh_seconds, self._refresh_queue_job)
            )
        self._loops.append(SingleFlightLoop("reconcile", self.config.reconcile_seconds, self._reconcile_job))
        self._loops.append(SingleFlightLoop("sync", self.config.sync_interval_seconds, self._sync_job))
        for loop in self._loops:
            loop.start()

        logger.info(
            "Session started",
            extra={
                "user_id": self.actor.user_id,
                "role": self.actor.role.value,
                "connected": self.connection.is_connected,
            },
        )

    async def stop(self) -> None:
        """Stop the loops and flush any pending autosave."""

        for loop in self._loops:
            await loop.stop()
        self._loops = []

        if self._autosaver is not None:
            await self._autosaver.flush()
            self._autosaver = None

        logger.info("Session stopped", extra={"user_id": self.actor.user_id})

    def reset(self) -> None:
        """Forget per-session memory (logout or reload); stored data is untouched."""

        self.close_editor()
        self.monitor.reset()
        self.synchronizer.reset()
        self.notifier.clear()
        self.queue = []


__all__ = ["SalesSession"]
