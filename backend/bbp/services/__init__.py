# Services package init
"""
Best Bike Paths Backend - Services Layer
=========================================

What:  Orchestration between routes (HTTP) and the database/engine.
How:   Services take an AsyncSession plus validated request schemas, read
       through QueryService, call the pure engine, and write results back.

Service Inventory:
    - QueryService:       every SQL statement the application runs
    - StatusService:      segment → path status cascade
    - PathService:        create, search, list, visibility, delete
    - ReportService:      file, confirm/reject, list, attach, delete
    - TripService:        recorded rides
    - StatsService:       per-trip ride metrics and per-period summaries
    - Geocoder (abstract) / NominatimGeocoder: address → coordinates

Error contract:
    Services raise BBPError subclasses for expected failures and wrap any
    other exception from the database in DatabaseError.
"""
