"""Agents that call Gemini on behalf of the API endpoints."""
