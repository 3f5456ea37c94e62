"""Infrastructure - settings and SQLite persistence"""
