"""Route modules mounted by lifelog.api.app"""
