"""HTTP API - FastAPI app, routes and request auth"""
