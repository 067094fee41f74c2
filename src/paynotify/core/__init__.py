"""Core domain package for paynotify.

Core contains the rule table, field extraction, admission control and
deduplication logic without any Telegram, OCR engine or transport-specific
code, keeping the business logic portable.
"""
