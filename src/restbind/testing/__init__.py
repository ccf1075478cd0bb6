"""Testing utilities for restbind applications.

Usage::

    from restbind.testing import TestClient

    async with TestClient(app) as client:
        response = await client.get("/")
        assert response.status == 204
"""

from restbind.testing.client import TestClient

__all__ = ["TestClient"]
