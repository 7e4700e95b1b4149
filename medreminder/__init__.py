"""
MedReminder Backend Application Package

Medicine reminder service with JSON/SQLite storage, in-process timers,
Web Push delivery, a prescription text parser and a mock report analyzer.
"""

__version__ = "0.1.0"
