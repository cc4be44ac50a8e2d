"""Service layer: application services, their DTOs and the ports they use.

Import from the concrete modules (``authcore.services.auth.service``,
``authcore.services.auth.dto``). This package does not re-export them, so
the infra adapters can import ``authcore.services._shared.errors`` without
loading the services that depend on those adapters.
"""
