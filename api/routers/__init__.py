"""
API Routers - Organized endpoint handlers for the Intake API.

Each router handles a specific domain:
- requests: Submission and moderation of design requests
- admin: Passcode login and session management
- messages: Broadcast announcements
- orders: Order intake open/closed switch
- settings: Runtime configuration of the remote store and webhook
"""
