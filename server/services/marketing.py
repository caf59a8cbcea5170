"""Marketing advice built from templates filled with the business profile.

Results are cached per user (strategies per budget, suggestions per count)
and evicted when the profile changes. Sentiment analyses are cached per
feedback set and shared across users.
"""

import time
from datetime import date
from typing import Any, Callable, Dict, List, Optional

from core.cache import CacheService
from core.cache_keys import CacheKeys, CacheTTL, feedback_hash
from core.exceptions import ValidationFailedError
from core.logging import get_logger, log_execution_time
from models.database import BusinessProfile
from services import sentiment

logger = get_logger(__name__)

MIN_CONTENT_SUGGESTIONS = 5
VISUAL_INDUSTRIES = ("food-beverage", "retail", "hospitality")
HOW_TO_INDUSTRIES = ("food-beverage", "retail", "services")

SEASONAL_CONTEXT = {
    1: ("New Year", "New Year celebrations and fresh start promotions",
        "Capitalize on New Year shopping and resolution-related purchases"),
    2: ("Republic Day", "Republic Day patriotic themes and sales",
        "Connect with national pride and offer special discounts"),
    3: ("Holi", "Festival of colors celebrations",
        "Vibrant, colorful promotions for the festive season"),
    4: ("Spring Season", "Spring season refresh and renewal themes",
        "Fresh starts and seasonal product promotions"),
    5: ("Summer Sale", "Summer season special offers",
        "Beat the heat with summer-specific products and services"),
    6: ("Monsoon", "Monsoon season preparations",
        "Rainy season products and cozy indoor experiences"),
    7: ("Monsoon", "Monsoon season continues",
        "Rainy season products and cozy indoor experiences"),
    8: ("Independence Day", "Independence Day patriotic celebrations",
        "National pride and freedom sale promotions"),
    9: ("Ganesh Chaturthi", "Ganesh Chaturthi festival celebrations",
        "Major festival shopping and celebration themes"),
    10: ("Navratri & Dussehra", "Navratri and Dussehra festival season",
         "Major festival season with high shopping activity"),
    11: ("Diwali", "Diwali - Festival of Lights celebrations",
         "Biggest shopping season of the year in India"),
    12: ("Year-End Sale", "Year-end clearance and holiday season",
         "Clear inventory and prepare for new year"),
}

TRENDING_TOPICS = (
    ("Sustainability", "Share how your business is eco-friendly or sustainable",
     "Growing consumer interest in sustainable businesses"),
    ("Digital Transformation", "Showcase how you're embracing digital tools",
     "Demonstrates innovation and modern approach"),
    ("Local First", "Emphasize supporting local businesses",
     "Strong movement supporting local economy"),
    ("Health & Wellness", "Connect your offerings to health and wellness",
     "Increased focus on health post-pandemic"),
)


def _profile_context(profile: BusinessProfile) -> Dict[str, str]:
    return {
        "industry": profile.industry or "general",
        "business_type": profile.business_type or "business",
        "audience": profile.target_audience or "your customers",
        "location": profile.location or "your area",
    }


def strategy_templates(profile: BusinessProfile) -> List[Dict[str, Any]]:
    """All strategies that apply to this profile, unfiltered."""
    ctx = _profile_context(profile)
    visual = ctx["industry"] in VISUAL_INDUSTRIES

    templates = [
        {
            "title": "Social Media Presence",
            "description": (f"Build a strong social media presence on platforms popular with {ctx['audience']}. "
                            "Focus on consistent posting and engagement."),
            "estimatedCost": 0,
            "expectedReach": 500,
            "difficulty": "low",
            "actionSteps": [
                "Create business profiles on Facebook, Instagram, and WhatsApp Business",
                f"Post daily content showcasing your {ctx['business_type']} offerings",
                "Engage with customer comments and messages within 2 hours",
                f"Use local hashtags related to {ctx['location']} and {ctx['industry']}",
                "Share customer testimonials and success stories",
            ],
            "timeline": "2-4 weeks to establish presence",
        },
        {
            "title": "Google My Business Optimization",
            "description": (f"Claim and optimize your Google My Business listing to appear in local searches "
                            f"for {ctx['industry']} businesses in {ctx['location']}."),
            "estimatedCost": 0,
            "expectedReach": 300,
            "difficulty": "low",
            "actionSteps": [
                "Claim your Google My Business listing",
                "Add complete business information, hours, and photos",
                "Encourage satisfied customers to leave reviews",
                "Post weekly updates about offers and new products",
                "Respond to all customer reviews promptly",
            ],
            "timeline": "1-2 weeks to set up",
        },
        {
            "title": "WhatsApp Business Marketing",
            "description": (f"Use WhatsApp Business to directly reach {ctx['audience']} "
                            "with personalized offers and updates."),
            "estimatedCost": 500,
            "expectedReach": 200,
            "difficulty": "low",
            "actionSteps": [
                "Set up WhatsApp Business account with catalog",
                "Collect customer phone numbers with permission",
                "Send weekly offers and product updates",
                "Create broadcast lists for different customer segments",
                "Use status updates to showcase daily specials",
            ],
            "timeline": "1 week to launch",
        },
        {
            "title": "Local Business Partnerships",
            "description": (f"Partner with complementary businesses in {ctx['location']} "
                            "to cross-promote and expand reach."),
            "estimatedCost": 1000,
            "expectedReach": 400,
            "difficulty": "medium",
            "actionSteps": [
                f"Identify 5-10 complementary businesses in {ctx['location']}",
                "Propose mutual promotion arrangements",
                "Create joint offers or bundled services",
                "Share each other's content on social media",
                "Host collaborative events or promotions",
            ],
            "timeline": "3-4 weeks to establish partnerships",
        },
    ]

    if visual:
        templates.append({
            "title": "Visual Content Marketing",
            "description": (f"Create engaging visual content showcasing your {ctx['business_type']} "
                            f"to attract {ctx['audience']}."),
            "estimatedCost": 2000,
            "expectedReach": 800,
            "difficulty": "medium",
            "actionSteps": [
                "Take high-quality photos of products/services",
                "Create short video content (reels/shorts)",
                "Share behind-the-scenes content",
                "Post customer experience stories",
                "Run simple photo contests with customers",
            ],
            "timeline": "2-3 weeks to build content library",
        })

    templates.extend([
        {
            "title": "Customer Database Marketing",
            "description": "Build and leverage a customer database for targeted SMS and email campaigns.",
            "estimatedCost": 3000,
            "expectedReach": 600,
            "difficulty": "medium",
            "actionSteps": [
                "Collect customer contact information at point of sale",
                "Segment customers by purchase history and preferences",
                "Send personalized offers on birthdays and anniversaries",
                "Create loyalty program with exclusive SMS/email offers",
                "Send monthly newsletters with tips and promotions",
            ],
            "timeline": "4-6 weeks to build database",
        },
        {
            "title": "Customer Referral Program",
            "description": ("Incentivize existing customers to refer new customers "
                            "through a structured referral program."),
            "estimatedCost": 4000,
            "expectedReach": 500,
            "difficulty": "medium",
            "actionSteps": [
                "Design referral incentive structure (discounts, rewards)",
                "Create simple referral tracking system",
                "Promote referral program to existing customers",
                "Provide referral cards or digital codes",
                "Reward both referrer and new customer",
            ],
            "timeline": "3-4 weeks to launch",
        },
        {
            "title": "Community Events and Sponsorships",
            "description": f"Increase visibility in {ctx['location']} through local event participation and sponsorships.",
            "estimatedCost": 5000,
            "expectedReach": 1000,
            "difficulty": "medium",
            "actionSteps": [
                f"Identify local events in {ctx['location']} relevant to {ctx['audience']}",
                "Sponsor community events or sports teams",
                "Set up stalls at local markets or fairs",
                "Host in-store events or workshops",
                "Distribute branded materials at events",
            ],
            "timeline": "6-8 weeks to plan and execute",
        },
        {
            "title": "Targeted Social Media Advertising",
            "description": f"Run targeted ads on Facebook and Instagram to reach {ctx['audience']} in {ctx['location']}.",
            "estimatedCost": 8000,
            "expectedReach": 2000,
            "difficulty": "high",
            "actionSteps": [
                "Define target audience demographics and interests",
                "Create compelling ad creatives and copy",
                "Set up Facebook Ads Manager account",
                "Start with small daily budget (₹200-500)",
                "Monitor performance and optimize based on results",
            ],
            "timeline": "2-3 weeks to set up and test",
        },
    ])

    if visual:
        templates.append({
            "title": "Local Influencer Collaborations",
            "description": (f"Partner with local micro-influencers to promote your {ctx['business_type']} "
                            "to their followers."),
            "estimatedCost": 10000,
            "expectedReach": 3000,
            "difficulty": "high",
            "actionSteps": [
                f"Identify local influencers followed by {ctx['audience']}",
                "Reach out with collaboration proposals",
                "Offer free products/services in exchange for posts",
                "Create unique discount codes for influencer followers",
                "Track results and build long-term relationships",
            ],
            "timeline": "4-6 weeks to establish collaborations",
        })

    return templates


def content_templates(profile: BusinessProfile, month: int) -> List[Dict[str, Any]]:
    """Content ideas for the profile; ``month`` (1-12) picks the seasonal and trending entries."""
    ctx = _profile_context(profile)
    season_name, season_description, season_relevance = SEASONAL_CONTEXT[month]
    topic_name, topic_description, topic_relevance = TRENDING_TOPICS[(month - 1) % len(TRENDING_TOPICS)]

    how_to = []
    if ctx["industry"] in HOW_TO_INDUSTRIES:
        how_to.append({
            "title": f"How-to Guide Related to {ctx['industry']}",
            "platform": "blog",
            "contentType": "Educational Blog Post",
            "outline": ("Write a helpful guide that positions you as an expert: a catchy title, a short "
                        "introduction to the problem, step-by-step instructions, pro tips from your "
                        "experience and a call-to-action to visit or contact you. Share it on social media."),
            "estimatedEffort": "high",
            "potentialReach": 500,
            "relevance": f"Establishes authority and attracts {ctx['audience']} searching for solutions",
        })

    return [
        {
            "title": f"Showcase Your {ctx['business_type']} Offerings",
            "platform": "social",
            "contentType": "Product Highlight Post",
            "outline": ("Create a visually appealing post featuring your best-selling products or services. "
                        "Include an eye-catching image, a brief description of unique features, price and "
                        f"availability, a call-to-action and hashtags: #{ctx['location']} #{ctx['industry']}"),
            "estimatedEffort": "low",
            "potentialReach": 300,
            "relevance": f"Perfect for attracting {ctx['audience']} in {ctx['location']}",
        },
        {
            "title": "Share Customer Success Stories",
            "platform": "social",
            "contentType": "Customer Testimonial",
            "outline": ("Feature a satisfied customer's experience: their testimonial in their own words, "
                        "the problem you solved, a thank-you message and an invitation for others to share."),
            "estimatedEffort": "low",
            "potentialReach": 250,
            "relevance": f"Builds trust with {ctx['audience']} through social proof",
        },
        {
            "title": "Behind-the-Scenes Content",
            "platform": "social",
            "contentType": "Behind-the-Scenes Story",
            "outline": ("Show your workspace, introduce team members and your process, "
                        "and share your business values using Stories or Reels."),
            "estimatedEffort": "low",
            "potentialReach": 400,
            "relevance": f"Humanizes your brand and connects with {ctx['audience']}",
        },
        {
            "title": f"{season_name} Special Promotion",
            "platform": "social",
            "contentType": "Seasonal Campaign",
            "outline": (f"Create a {season_name}-themed promotion with a limited-time offer. "
                        f"{season_description}. Post several times leading up to the event."),
            "estimatedEffort": "medium",
            "potentialReach": 600,
            "relevance": season_relevance,
        },
        {
            "title": "Weekly Customer Newsletter",
            "platform": "email",
            "contentType": "Newsletter",
            "outline": ("Send a weekly update with featured products, a subscriber-only offer, "
                        f"a helpful tip related to {ctx['industry']} and a clear call-to-action."),
            "estimatedEffort": "medium",
            "potentialReach": 200,
            "relevance": f"Keeps your {ctx['audience']} engaged and informed",
        },
        {
            "title": "Flash Sale SMS Alert",
            "platform": "sms",
            "contentType": "Promotional SMS",
            "outline": ("Send a time-sensitive offer with a clear discount, a deadline, "
                        "simple redemption instructions and an opt-out, under 160 characters."),
            "estimatedEffort": "low",
            "potentialReach": 150,
            "relevance": f"Direct reach to {ctx['audience']} with high open rates",
        },
        *how_to,
        {
            "title": "Customer Photo Contest",
            "platform": "social",
            "contentType": "User-Generated Content Campaign",
            "outline": ("Invite customers to share photos with your products under a unique hashtag, "
                        "offer a prize, repost submissions with credit and announce a winner."),
            "estimatedEffort": "medium",
            "potentialReach": 800,
            "relevance": f"Generates authentic content and engages {ctx['audience']}",
        },
        {
            "title": f"Celebrate {ctx['location']} Community",
            "platform": "social",
            "contentType": "Community Engagement Post",
            "outline": ("Highlight local landmarks and events, your community involvement "
                        "and other local businesses; tag local community pages."),
            "estimatedEffort": "low",
            "potentialReach": 350,
            "relevance": f"Strengthens local presence with {ctx['audience']} in {ctx['location']}",
        },
        {
            "title": f"{topic_name} Trend Post",
            "platform": "social",
            "contentType": "Trending Topic",
            "outline": (f"{topic_description}. Connect the trend to your business, use trending hashtags "
                        "and encourage discussion in comments."),
            "estimatedEffort": "low",
            "potentialReach": 700,
            "relevance": topic_relevance,
        },
    ]


class MarketingService:
    """Cached marketing strategies and content suggestions."""

    def __init__(self, cache: CacheService, today: Callable[[], date] = date.today):
        self.cache = cache
        self.today = today

    async def generate_strategies(self, profile: BusinessProfile,
                                  budget: Optional[float] = None) -> List[Dict[str, Any]]:
        """Strategies affordable within budget (all when no budget), cheapest first."""
        if budget is not None and budget < 0:
            raise ValidationFailedError("Budget must not be negative", details={"budget": budget})

        async def produce() -> List[Dict[str, Any]]:
            templates = strategy_templates(profile)
            if budget is not None:
                templates = [t for t in templates if t["estimatedCost"] <= budget]
            templates.sort(key=lambda t: t["estimatedCost"])
            logger.debug("Strategies generated", user_id=profile.user_id, budget=budget, count=len(templates))
            stamp = int(time.time() * 1000)
            return [{**t, "id": f"strategy-{stamp}-{i}"} for i, t in enumerate(templates)]

        return await self.cache.get_or_set(
            CacheKeys.marketing_strategies(profile.user_id, budget),
            CacheTTL.MARKETING_STRATEGIES,
            produce,
        )

    async def suggest_content(self, profile: BusinessProfile, count: int = MIN_CONTENT_SUGGESTIONS) -> List[Dict[str, Any]]:
        """At least MIN_CONTENT_SUGGESTIONS ideas, more when asked and available."""
        if count < 1:
            raise ValidationFailedError("Count must be at least 1", details={"count": count})

        async def produce() -> List[Dict[str, Any]]:
            templates = content_templates(profile, self.today().month)
            selected = templates[:max(count, MIN_CONTENT_SUGGESTIONS)]
            stamp = int(time.time() * 1000)
            return [{**t, "id": f"content-{stamp}-{i}"} for i, t in enumerate(selected)]

        return await self.cache.get_or_set(
            CacheKeys.content_suggestions(profile.user_id, count),
            CacheTTL.CONTENT_SUGGESTIONS,
            produce,
        )

    @staticmethod
    def content_outline(content_id: str) -> str:
        """Generic production outline for a suggested piece of content."""
        content_id = content_id.strip()
        if not content_id:
            raise ValidationFailedError(
                "Content ID is required",
                code="MISSING_CONTENT_ID",
                suggestion="Provide a valid content ID in the URL",
            )
        return (f"Detailed outline for content {content_id}:\n\n"
                "1. Introduction\n2. Main content points\n3. Call to action\n4. Engagement prompts")

    async def analyze_sentiment(self, feedback: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Sentiment of a batch of feedback items (``text`` plus optional ``language``).

        The result is shared across users: it is cached under a hash of the
        texts, so the same feedback in any order is analysed once a day.
        """
        if not feedback:
            return sentiment.empty_analysis()

        async def produce() -> Dict[str, Any]:
            start = time.time()
            result = sentiment.analyze(feedback)
            log_execution_time(logger, "sentiment_analysis", start, time.time(), items=len(feedback))
            return result

        return await self.cache.get_or_set(
            CacheKeys.sentiment_analysis(feedback_hash(item["text"] for item in feedback)),
            CacheTTL.SENTIMENT_ANALYSIS,
            produce,
        )
