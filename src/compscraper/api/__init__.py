"""
FastAPI REST API for the Comparable Scrape Pipeline

Provides REST endpoints to:
- Create scrape jobs and run them synchronously or in the background
- Read job status
- Search stored comparables
- Health checks
"""
