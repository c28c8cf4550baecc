"""
Hafez Quraan Backend — API Routes Package
===========================================

What:  HTTP route handlers that accept requests and return responses.
How:   Each route module handles one area of the API.

Route Inventory:
    - health.py:    GET  /                       (service descriptor)
                    GET  /health                 (liveness check)
    - otp.py:       POST /send-otp               (email a verification code)
    - progress.py:  POST /save-progress          (replace stored progress)
                    GET  /load-progress/{email}  (read stored progress)
    - activity.py:  POST /log-activity           (append an activity event)
                    GET  /analytics              (usage rollups)

Design Principle:
    Routes are THIN: parse the body, call one service, wrap the result in
    the success envelope. Failures are raised as HafezError subclasses and
    turned into `{"success": false, "error": ...}` by the handlers in main.py.
"""
