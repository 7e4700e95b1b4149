"""Reminder module (storage, in-process timers, Web Push dispatch, API).

Reminders live in a JSON file or SQLite; each pending reminder has one
asyncio timer in the API process. Timers are re-armed from storage on
startup.
"""
