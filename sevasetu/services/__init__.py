"""
Services layer - complaint lifecycle business logic.

DESIGN PRINCIPLE:
- Services contain business logic, NOT routes
- Status changes go through the lifecycle controller only
- Automated verification is advisory; supervisors decide
"""
