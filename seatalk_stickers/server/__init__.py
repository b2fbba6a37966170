"""HTTP server package: SeaTalk webhook endpoint and background jobs.

WHY: SeaTalk pushes bot events to a callback URL. This package receives
them, routes each one (dispatch.py), and runs /convert requests as
background jobs (jobs.py, conversion.py) so the webhook answers at once.

HOW: A FastAPI app (app.py) owns the SeaTalk and Telegram clients for the
lifetime of the process and hands each parsed event to the
WebhookDispatcher.

RULES:
- Webhook handling never waits for a conversion job
- All user-visible texts live in messages.py
"""
