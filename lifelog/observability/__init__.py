"""Observability - structured logging and in-process telemetry"""
