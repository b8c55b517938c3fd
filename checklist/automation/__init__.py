"""
Automation - timers behind the checklist

Everything time-driven is a notification: a durable, uniquely keyed timer
carrying a typed payload, delivered exactly once when due.

Components:
    instants.py: Instant/Duration arithmetic and the daily reset boundary
    payloads.py: The five notification payload kinds
    notifications.py: Durable notification store
    daily_reset.py: Recurring daily counter adjustment
    roll.py: Self-rescheduling roll animation chain
    dispatch.py: Routes delivered notifications to their handlers
    runner.py: Event loop delivering due notifications

Usage:
    # Run the timer host
    python -m checklist.automation.runner --start

    # Deliver whatever is due right now
    from checklist.app import build_app
    build_app().dispatcher.process_due()
"""
