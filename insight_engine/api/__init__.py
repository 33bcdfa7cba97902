"""
API Layer

Stateless HTTP surface over the insight engine. Each request carries its own
reflection snapshot; nothing is stored between requests.
"""
