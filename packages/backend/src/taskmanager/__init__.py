"""Task Manager — multi-user task tracker.

Users register, log in with a signed token, and manage their own tasks
over a JSON API. A websocket dashboard re-runs filtered task queries
for each message the client sends.
"""

__version__ = "0.1.0"
