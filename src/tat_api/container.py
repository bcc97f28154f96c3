"""Wires the process-wide service graph from Settings.

Built once in the FastAPI lifespan and stored on ``app.state.container``.
Tests build one directly with fakes for the HTTP client and notifier.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx
import structlog

from src.tat_api.config import Settings
from src.tat_api.identity.cache import IdentityCache, build_cache_backend
from src.tat_api.identity.firebase import FirebaseVerifier
from src.tat_api.identity.resolver import ContactResolver
from src.tat_api.notifications.gmail import GmailNotificationSender, NotificationSender
from src.tat_api.salesforce.campaigns import CampaignService
from src.tat_api.salesforce.client import SalesforceClient
from src.tat_api.salesforce.query import QueryPaginator
from src.tat_api.salesforce.retry import RequestOrchestrator
from src.tat_api.salesforce.tokens import TokenManager, TokenStore
from src.tat_api.workflows.outreach_report import PostOutreachReportWorkflow

logger = structlog.get_logger(__name__)


@dataclass
class ServiceContainer:
    http_client: httpx.AsyncClient
    token_store: TokenStore
    tokens: TokenManager
    salesforce: SalesforceClient
    orchestrator: RequestOrchestrator
    paginator: QueryPaginator
    campaigns: CampaignService
    cache: IdentityCache
    resolver: ContactResolver
    verifier: FirebaseVerifier
    notifier: NotificationSender
    post_outreach_report: PostOutreachReportWorkflow

    @classmethod
    def build(
        cls,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
        token_store: TokenStore | None = None,
        notifier: NotificationSender | None = None,
    ) -> ServiceContainer:
        http_client = http_client or httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT)
        token_store = token_store or TokenStore.load(settings.SALESFORCE_TOKEN_FILE)
        tokens = TokenManager(
            store=token_store,
            http_client=http_client,
            oauth_base=settings.SALESFORCE_OAUTH_BASE,
            client_id=settings.SALESFORCE_CLIENT_ID,
            client_secret=settings.SALESFORCE_CLIENT_SECRET,
        )
        salesforce = SalesforceClient(tokens, http_client, api_version=settings.SALESFORCE_API_VERSION)
        orchestrator = RequestOrchestrator(tokens)
        paginator = QueryPaginator(salesforce, orchestrator, max_pages=settings.QUERY_MAX_PAGES)
        campaigns = CampaignService(salesforce, orchestrator, paginator)
        cache = IdentityCache(build_cache_backend(settings))
        resolver = ContactResolver(cache, paginator, salesforce, orchestrator)
        verifier = FirebaseVerifier(http_client, settings.FIREBASE_API_KEY, settings.FIREBASE_AUTH_BASE)
        notifier = notifier or GmailNotificationSender(
            settings.GOOGLE_SERVICE_ACCOUNT_FILE,
            settings.NOTIFICATION_SENDER_EMAIL,
        )
        workflow = PostOutreachReportWorkflow(
            verifier=verifier,
            resolver=resolver,
            client=salesforce,
            orchestrator=orchestrator,
            paginator=paginator,
            campaigns=campaigns,
            notifier=notifier,
        )
        logger.info("container.built", cache_backend=cache.backend.name)
        return cls(
            http_client=http_client,
            token_store=token_store,
            tokens=tokens,
            salesforce=salesforce,
            orchestrator=orchestrator,
            paginator=paginator,
            campaigns=campaigns,
            cache=cache,
            resolver=resolver,
            verifier=verifier,
            notifier=notifier,
            post_outreach_report=workflow,
        )

    async def aclose(self) -> None:
        await self.http_client.aclose()
        self.cache.backend.dispose()
