"""Calendar session sync application service."""
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import httpx

from eventsync.application.services.reconcile_event import ReconcileAction
from eventsync.application.services.reconcile_session import CalendarSessionReconciler
from eventsync.domain.errors import MalformedPayload
from eventsync.domain.models.external_event import EventDomain
from eventsync.domain.models.integration_account import IntegrationType
from eventsync.domain.models.owner import ConsultingClient
from eventsync.domain.models.reconciler_config import ReconcilerConfig
from eventsync.domain.ports.account_repo import IntegrationAccountRepository
from eventsync.domain.ports.entity_repo import TrackedEntityRepository
from eventsync.domain.ports.event_log_repo import RawEventLogRepository
from eventsync.domain.ports.owner_repo import ConsultingClientRepository
from eventsync.domain.services.credential_policy import CredentialPolicy
from eventsync.infrastructure.integrations.google_calendar.client import GoogleCalendarClient
from eventsync.infrastructure.integrations.google_calendar.decoder import (
    CalendarEventDecoder, matches_client
)
from eventsync.infrastructure.integrations.google_calendar.models import CalendarEventItem
from eventsync.infrastructure.integrations.google_calendar.oauth import GoogleOAuthClient

logger = logging.getLogger(__name__)

NAME_SEARCH_MAX_RESULTS = 50


class CalendarSessionSyncService:
    """
    High-level orchestration service for pulling consulting sessions.

    Responsibilities:
    - Keep the consultant's Google token valid
    - List calendar events per client (by e-mail, then by first name)
    - Reconcile each matching event into a session entity
    - Report missing connections and unknown clients as soft failures
    """

    def __init__(
        self,
        account_repo: IntegrationAccountRepository,
        client_repo: ConsultingClientRepository,
        entity_repo: TrackedEntityRepository,
        event_log_repo: RawEventLogRepository,
        config: ReconcilerConfig,
        default_consultant_id: str = "",
        oauth_client: Optional[GoogleOAuthClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize service with repositories.

        Args:
            account_repo: Integration account repository (Google tokens)
            client_repo: Consulting client repository
            entity_repo: Tracked entity repository
            event_log_repo: Raw event log repository
            config: Reconciler configuration
            default_consultant_id: Consultant used when a request names none
            oauth_client: Google OAuth client
            transport: Optional httpx transport for the Calendar API
        """
        self.account_repo = account_repo
        self.client_repo = client_repo
        self.entity_repo = entity_repo
        self.event_log_repo = event_log_repo
        self.config = config
        self.default_consultant_id = default_consultant_id
        self.oauth_client = oauth_client or GoogleOAuthClient()
        self.transport = transport
        self.decoder = CalendarEventDecoder()

    async def sync(
        self,
        consultant_id: Optional[str] = None,
        client_email: Optional[str] = None,
        sync_all: bool = False,
        now: Optional[datetime] = None
    ) -> dict:
        """
        Sync sessions for one client, or every client, of a consultant.

        Args:
            consultant_id: Consultant whose calendar is read
            client_email: Client to sync when not syncing all
            sync_all: Sync every client of the consultant
            now: Reference time (defaults to the current time)

        Returns:
            Result summary; soft failures carry "error" and synced=0
        """
        now = now or datetime.now(timezone.utc)
        consultant_id = consultant_id or self.default_consultant_id
        if not consultant_id:
            return {"error": "Nenhum consultor informado", "synced": 0}

        logger.info(
            f"Syncing calendar sessions for consultant {consultant_id} "
            f"({'all clients' if sync_all else client_email})"
        )

        access_token = await self._get_access_token(consultant_id)
        if not access_token:
            return {"error": "Google Calendar não conectado", "synced": 0}

        reconciler = CalendarSessionReconciler(
            self.entity_repo, self.event_log_repo, self.config, consultant_id
        )

        if sync_all:
            clients = self.client_repo.list_by_owner(consultant_id)
            if not clients:
                logger.info(f"No clients found for consultant {consultant_id}")
                return {"message": "Nenhum cliente encontrado", "synced": 0}

            total_synced = 0
            all_events = []
            for client in clients:
                synced, events = await self._sync_client(client, access_token, reconciler, now)
                total_synced += synced
                all_events.extend(events)

            logger.info(f"Total sessions synced for consultant {consultant_id}: {total_synced}")
            return {
                "success": True,
                "synced": total_synced,
                "clientsProcessed": len(clients),
                "events": all_events
            }

        if not client_email:
            return {"error": "clientEmail é obrigatório", "synced": 0}

        client = self.client_repo.find_by_email(consultant_id, client_email)
        if not client:
            logger.info(f"Client not found: {client_email}")
            return {"error": "Cliente não encontrado", "synced": 0}

        synced, events = await self._sync_client(client, access_token, reconciler, now)
        return {"success": True, "synced": synced, "events": events}

    async def sync_connected_owners(self) -> dict:
        """
        Sync every client of every owner with a connected calendar.

        Returns:
            Per-owner results keyed by owner ID
        """
        results = {}
        for account in self.account_repo.list_all(IntegrationType.GOOGLE_CALENDAR):
            if not account.syncable:
                continue
            try:
                results[account.owner_id] = await self.sync(account.owner_id, sync_all=True)
            except Exception as e:
                logger.error(f"Calendar sync failed for owner {account.owner_id}: {str(e)}")
                results[account.owner_id] = {"error": str(e), "synced": 0}
        return results

    async def _get_access_token(self, owner_id: str) -> Optional[str]:
        """
        Return a valid access token, refreshing it if needed.

        Args:
            owner_id: Owner whose calendar is read

        Returns:
            Access token, or None when the calendar is not connected or refresh failed
        """
        account = self.account_repo.find_by_owner(IntegrationType.GOOGLE_CALENDAR, owner_id)
        if not account:
            logger.error(f"No Google Calendar connection for owner {owner_id}")
            return None

        if CredentialPolicy.should_refresh_credentials(account):
            logger.info(f"Refreshing Google Calendar credentials for owner {owner_id}")
            try:
                new_credentials = await self.oauth_client.refresh_access_token(
                    account.credentials.refresh_token
                )
            except httpx.HTTPError as e:
                logger.error(f"Google token refresh failed for owner {owner_id}: {str(e)}")
                account.mark_error()
                self.account_repo.save(account)
                return None

            account.update_credentials(new_credentials)
            self.account_repo.save(account)

        return account.credentials.access_token

    async def _sync_client(
        self,
        client: ConsultingClient,
        access_token: str,
        reconciler: CalendarSessionReconciler,
        now: datetime
    ) -> tuple:
        """
        Sync one client's sessions.

        Returns:
            Tuple of (new sessions count, list of new session summaries)
        """
        api_client = GoogleCalendarClient(access_token, transport=self.transport)
        time_min = now - timedelta(days=self.config.calendar_lookback_days)
        time_max = now + timedelta(days=self.config.calendar_lookahead_days)

        try:
            items = await api_client.list_events(time_min, time_max, query=client.email)
            synced, events = await self._reconcile_items(items, client, reconciler, now, True)

            # Events often name the client without inviting them
            if synced == 0 and client.first_name:
                items = await api_client.list_events(
                    time_min, time_max,
                    query=client.first_name,
                    max_results=NAME_SEARCH_MAX_RESULTS
                )
                synced, events = await self._reconcile_items(items, client, reconciler, now, False)
        except httpx.HTTPError as e:
            logger.error(f"Calendar API error for {client.email}: {str(e)}")
            return 0, []

        return synced, events

    async def _reconcile_items(
        self,
        items: List[CalendarEventItem],
        client: ConsultingClient,
        reconciler: CalendarSessionReconciler,
        now: datetime,
        require_match: bool
    ) -> tuple:
        synced = 0
        events = []
        for item in items:
            if require_match and not matches_client(item, client):
                continue
            try:
                event = self.decoder.decode_item(item, client, now)
            except MalformedPayload as e:
                logger.warning(f"Skipping calendar event: {str(e)}")
                continue

            is_new = self.entity_repo.find_by_natural_key(EventDomain.CALENDAR, event.natural_key) is None
            result = await reconciler.reconcile(event, item.raw_payload)
            if result.action != ReconcileAction.PROCESSED or not is_new:
                continue

            synced += 1
            events.append({
                "title": event.attributes["title"],
                "date": event.attributes["session_date"],
                "status": result.status
            })
            logger.info(f"Created session: {event.attributes['title']}")
        return synced, events
