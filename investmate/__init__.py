"""
InvestMate API package.

A FastAPI service behind the InvestMate marketplace, where startups looking
for funding meet investors: accounts and sessions, role-specific profiles, a
startup directory, investor interest, image uploads and AI coaching and
matchmaking with local fallbacks.
"""
