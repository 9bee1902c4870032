from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from app.application.ports.authenticator import AuthenticatorPort
from app.application.ports.booking_store import BookingStorePort
from app.application.ports.notifier import NotificationSinkPort
from app.application.use_cases.api_keys import ApiKeyRegistry
from app.application.use_cases.claim_job import JobClaimArbiter
from app.application.use_cases.gateway import GatewayService
from app.core.config import Settings, settings as default_settings
from app.infrastructure.contractors.directory import OpenContractorDirectory, StaticContractorDirectory
from app.infrastructure.metering.usage_meter import UsageMeter, usage_meter
from app.infrastructure.notifications.dispatcher import NotificationDispatcher
from app.infrastructure.notifications.sinks import sink_from_settings
from app.infrastructure.store.api_key_store import MemoryApiKeyStore
from app.infrastructure.store.json_store import JsonBookingStore
from app.infrastructure.store.memory_store import MemoryBookingStore


@dataclass
class Container:
    settings: Settings
    store: BookingStorePort
    meter: UsageMeter
    api_keys: ApiKeyRegistry
    dispatcher: NotificationDispatcher
    gateway: GatewayService


def get_booking_store(settings: Settings) -> BookingStorePort:
    if settings.STORE_PROVIDER.lower() == "json":
        return JsonBookingStore(data_dir=settings.DATA_DIR)
    return MemoryBookingStore()


def get_authenticator(settings: Settings) -> AuthenticatorPort:
    if not settings.ACTIVE_CONTRACTOR_IDS and not settings.PENDING_CONTRACTOR_IDS:
        if settings.ENV.lower() in {"dev", "local"}:
            return OpenContractorDirectory()
    return StaticContractorDirectory(
        active_ids=settings.ACTIVE_CONTRACTOR_IDS,
        pending_ids=settings.PENDING_CONTRACTOR_IDS,
    )


def build_container(
    settings: Settings | None = None,
    *,
    store: BookingStorePort | None = None,
    authenticator: AuthenticatorPort | None = None,
    sink: NotificationSinkPort | None = None,
    meter: UsageMeter | None = None,
) -> Container:
    settings = settings or default_settings
    store = store or get_booking_store(settings)
    meter = meter or usage_meter

    api_keys = ApiKeyRegistry(store=MemoryApiKeyStore())
    for raw_key in settings.API_KEYS:
        api_keys.seed(raw_key)

    dispatcher = NotificationDispatcher(
        sink=sink or sink_from_settings(settings),
        max_retries=settings.NOTIFY_MAX_RETRIES,
        backoff_seconds=settings.NOTIFY_BACKOFF_SECONDS,
        broker_url=settings.CELERY_BROKER_URL,
    )
    gateway = GatewayService(
        store=store,
        arbiter=JobClaimArbiter(store=store),
        authenticator=authenticator or get_authenticator(settings),
        publisher=dispatcher,
        meter=meter,
    )
    return Container(
        settings=settings,
        store=store,
        meter=meter,
        api_keys=api_keys,
        dispatcher=dispatcher,
        gateway=gateway,
    )


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_gateway(request: Request) -> GatewayService:
    return get_container(request).gateway


def get_api_key_registry(request: Request) -> ApiKeyRegistry:
    return get_container(request).api_keys
