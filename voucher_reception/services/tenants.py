"""
Tenant lookup used by the webhook and upload endpoints.
"""
from abc import ABC, abstractmethod
from threading import Lock
from typing import Dict, Optional

from ..models.document import Tenant


class TenantDirectoryBase(ABC):
    @abstractmethod
    def find_tenant_by_slug(self, slug: str) -> Optional[Tenant]:
        pass

    @abstractmethod
    def get_tenant(self, tenant_id: int) -> Optional[Tenant]:
        pass


class InMemoryTenantDirectory(TenantDirectoryBase):
    def __init__(self, slugs: list[str] = None):
        self._tenants: Dict[int, Tenant] = {}
        self._lock = Lock()
        for slug in slugs or []:
            self.add_tenant(slug)

    def add_tenant(self, slug: str, name: str = None) -> Tenant:
        with self._lock:
            existing = self._find(slug)
            if existing:
                return existing
            tenant = Tenant(id=len(self._tenants) + 1, slug=slug, name=name or slug)
            self._tenants[tenant.id] = tenant
            return tenant

    def _find(self, slug: str) -> Optional[Tenant]:
        return next((t for t in self._tenants.values() if t.slug == slug), None)

    def find_tenant_by_slug(self, slug: str) -> Optional[Tenant]:
        return self._find(slug)

    def get_tenant(self, tenant_id: int) -> Optional[Tenant]:
        return self._tenants.get(tenant_id)


def create_tenant_directory() -> InMemoryTenantDirectory:
    """Seed tenants from DEFAULT_TENANT_SLUGS"""
    from ..core.config import settings

    slugs = [slug.strip() for slug in settings.default_tenant_slugs.split(",") if slug.strip()]
    return InMemoryTenantDirectory(slugs)
