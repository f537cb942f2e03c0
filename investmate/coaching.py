"""
Static coaching advice used when the AI service cannot answer.
"""

from __future__ import annotations

from investmate.db import investor_sectors


def investor_coaching(investor: dict) -> dict:
    sectors = ", ".join(investor_sectors(investor)) or "technology"
    ticket_size = investor.get("ticketSize") or "₹10L - ₹50L"

    return {
        "greeting": f"Welcome back, {investor.get('fullName') or 'Investor'}!",
        "tips": [
            {
                "title": "Portfolio Diversification",
                "content": (
                    f"Consider diversifying across {sectors} subsectors to reduce "
                    "risk while maintaining exposure to high-growth opportunities."
                ),
            },
            {
                "title": "Due Diligence Focus",
                "content": (
                    f"For your {ticket_size} ticket size, prioritize startups with "
                    "clear unit economics and a path to profitability within "
                    "18-24 months."
                ),
            },
            {
                "title": "Market Trends",
                "content": (
                    f"The {sectors} space is seeing increased activity. Look for "
                    "startups solving genuine pain points with defensible technology."
                ),
            },
            {
                "title": "Founder Assessment",
                "content": (
                    "Evaluate founder-market fit carefully. The best founders have "
                    "deep domain expertise and relentless execution focus."
                ),
            },
        ],
        "summary": (
            f"Based on your focus on {sectors}, we recommend actively engaging with "
            "early-stage startups that demonstrate strong product-market fit signals."
        ),
    }


def startup_coaching(startup: dict) -> dict:
    industry = startup.get("industry") or "technology"
    stage = startup.get("stage") or "early-stage"
    funding = startup.get("fundingNeeded") or startup.get("funding") or "seed funding"
    name = startup.get("founderName") or startup.get("startupName") or "Founder"

    return {
        "analysis": {
            "profile_summary": (
                f"Welcome back, {name}! Your {stage} {industry} startup is on an "
                "exciting journey."
            ),
            "market_position": (
                f"As a {stage} company in {industry}, you're entering a dynamic and "
                "growing market with significant opportunities."
            ),
            "funding_readiness": (
                f"You're seeking {funding}. Focus on demonstrating clear traction "
                "and unit economics to attract the right investors."
            ),
        },
        "actionable_advice": [
            (
                f"For {stage} startups in {industry}, focus on demonstrating clear "
                "problem-solution fit and early traction metrics in your pitch deck."
            ),
            (
                f"When seeking {funding}, prioritize investors with portfolio "
                f"companies in {industry} who understand your market dynamics."
            ),
            (
                "Track and highlight key metrics like user growth, engagement rates, "
                "and unit economics to build investor confidence."
            ),
            (
                "Leverage warm introductions through your network. Investors are 4x "
                "more likely to respond to referred founders."
            ),
        ],
        "coach_verdict": {
            "next_steps": (
                "Refine your pitch deck with clear problem-solution narrative and "
                "identify 10 target investors this week."
            ),
            "focus_area": (
                "Prepare your data room with financials and metrics while practicing "
                "your pitch."
            ),
            "overall": (
                f"Focus on building strong traction in {industry} while preparing "
                f"compelling materials for your {funding} round."
            ),
        },
    }
