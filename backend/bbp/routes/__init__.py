# Routes package init
"""
Best Bike Paths Backend - API Routes Package
=============================================

Route Inventory:
    - paths.py:    POST/GET /api/v1/paths, GET /api/v1/paths/search,
                   GET/DELETE /api/v1/paths/{id}, PATCH .../visibility
    - reports.py:  POST/GET /api/v1/reports, POST .../{id}/confirm,
                   POST /api/v1/reports/attach, DELETE /api/v1/reports/{id}
    - trips.py:    POST/GET /api/v1/trips, DELETE /api/v1/trips/{id}
    - stats.py:    GET /api/v1/stats, GET /api/v1/stats/trips/{id}
    - health.py:   GET /health

Handlers stay thin: resolve the caller from X-User-ID, call a service,
return its schema.
"""
