from bulkshorts.core.config import settings
from bulkshorts.platform.ports.object_storage import ObjectStoragePort
from bulkshorts.platform.adapters.storage_local import LocalFilesystemStorage
from bulkshorts.platform.adapters.storage_s3 import S3Storage
from bulkshorts.platform.ports.event_bus import EventBusPort
from bulkshorts.platform.adapters.bus_noop import NoopEventBus
from bulkshorts.platform.adapters.bus_redis import RedisEventBus
from bulkshorts.platform.ports.url_validator import UrlValidatorPort
from bulkshorts.platform.adapters.url_validator_basic import SchemeUrlValidator

class ProviderRegistry:
    _object_storage: ObjectStoragePort | None = None
    _event_bus: EventBusPort | None = None
    _url_validator: UrlValidatorPort | None = None

    @classmethod
    def object_storage(cls) -> ObjectStoragePort:
        if cls._object_storage is None:
            if settings.OBJECT_STORAGE_PROVIDER == "s3":
                cls._object_storage = S3Storage()
            else:
                cls._object_storage = LocalFilesystemStorage(settings.LOCAL_STORAGE_ROOT)
        return cls._object_storage

    @classmethod
    def event_bus(cls) -> EventBusPort:
        if cls._event_bus is None:
            prov = (settings.EVENT_BUS_PROVIDER or "noop").lower()
            if prov == "redis":
                cls._event_bus = RedisEventBus()
            else:
                cls._event_bus = NoopEventBus()
        return cls._event_bus

    @classmethod
    def url_validator(cls) -> UrlValidatorPort:
        # The hosted AI validator plugs in here; only the scheme check is shipped.
        if cls._url_validator is None:
            cls._url_validator = SchemeUrlValidator()
        return cls._url_validator

    @classmethod
    def reset(cls) -> None:
        cls._object_storage = None
        cls._event_bus = None
        cls._url_validator = None

registry = ProviderRegistry()
