"""
Hafez Quraan Backend — Services Layer
=======================================

What:  Business logic layer sitting between routes (HTTP) and database (persistence).
How:   Services receive the request's AsyncSession (and, for mail, the
       dispatcher) as arguments and raise HafezError subclasses on failure.

Service Inventory:
    - IdentityService:  email validation, resolve-or-create, last-active upsert
    - ProgressService:  full-snapshot save / load of verse flags, pages, preferences
    - ActivityService:  append-only activity log + last-active bump
    - AnalyticsService: read-only rollups for the analytics dashboard
    - OtpService:       send-otp validation in front of the mail dispatcher
    - MailDispatcher (abstract) / SendGridDispatcher: verification-code email

Services hold no connection state. The engine, session factory and mail
client live on `app.state` and are created/released by the lifespan handler.
"""
