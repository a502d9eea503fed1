"""
grpcmock Admin API

Read-only FastAPI application for inspecting a running mock server: health,
metrics, the loaded mocks and the effective configuration.
"""

from dataclasses import asdict

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse


def create_admin_app(server) -> FastAPI:
    """
    Create the admin application for a MockServer.

    Args:
        server: MockServer whose state is exposed

    Returns:
        FastAPI application
    """
    prefix = server.config.admin_prefix
    app = FastAPI(
        title="grpcmock Admin API",
        description="Inspect the mocks served by a grpcmock server",
        version="1.0.0"
    )

    @app.get(f"{prefix}/health")
    async def get_health():
        """Report that the server is up and which service it mocks."""
        return JSONResponse(content={
            'status': 'ok',
            'service': server.service.full_name,
            'serving': server.is_serving,
        })

    @app.get(f"{prefix}/metrics")
    async def get_metrics():
        """Get call metrics."""
        return JSONResponse(content=server.metrics.to_dict())

    @app.get(f"{prefix}/mocks")
    async def list_mocks():
        """List methods with the number of mocks loaded for each."""
        mocks_summary = [
            {
                'method': method,
                'declared': method in server.service.methods,
                'mocks': len(server.store.get(method)),
            }
            for method in server.store.methods()
        ]
        return JSONResponse(content={
            'source': str(server.store.source) if server.store.source else None,
            'total': server.store.record_count(),
            'methods': mocks_summary,
        })

    @app.get(f"{prefix}/mocks/{{method}}")
    async def get_method_mocks(method: str):
        """Get the mocks of one method in match order."""
        if method not in server.store:
            raise HTTPException(status_code=404, detail=f"No mocks loaded for method {method}")
        records = server.store.get(method)
        return JSONResponse(content={
            'method': method,
            'total': len(records),
            'mocks': [record.to_dict() for record in records],
        })

    @app.get(f"{prefix}/config")
    async def get_config():
        """Get the effective configuration."""
        return JSONResponse(content={
            **asdict(server.config),
            'service': server.service.full_name,
            'methods': server.service.method_names(),
        })

    return app
