"""
Application constants and configuration values.

This module contains all application constants including:
- Plan quotas and pricing
- Guest allowance defaults
- Upstream model defaults
- Fixed user-facing notices (Hindi)

All constants should be imported from this module to maintain a single source of truth.
"""

from typing import Dict, List

from ..types import PlanConfigDict


# ============================================================================
# Plan Configuration
# ============================================================================
# messages_limit = messages per billing period
# Enterprise is unlimited; UNLIMITED_MESSAGES is the stored sentinel.

UNLIMITED_MESSAGES: int = 999_999

# Free tier quota. Earlier releases used 10 and 100; override with FREE_PLAN_MESSAGE_LIMIT.
FREE_PLAN_MESSAGE_LIMIT: int = 100

PLAN_CONFIG: Dict[str, PlanConfigDict] = {
    "free": {
        "messages_limit": FREE_PLAN_MESSAGE_LIMIT,
        "price": 0,
        "name_hindi": "मुफ़्त",
    },
    "premium": {
        "messages_limit": 5_000,
        "price": 499,
        "name_hindi": "प्रीमियम",
    },
    "enterprise": {
        "messages_limit": UNLIMITED_MESSAGES,
        "price": 1_999,
        "name_hindi": "एंटरप्राइज़",
    },
}

PLANS: List[str] = list(PLAN_CONFIG.keys())

# Monthly price per user in INR, used for the admin revenue estimate
PLAN_PRICING: Dict[str, int] = {plan: config["price"] for plan, config in PLAN_CONFIG.items()}
PLAN_CURRENCY: str = "INR"


# ============================================================================
# Guest Limits
# ============================================================================
# Earlier releases used 5, 10 and 20 guest messages per day.

GUEST_MESSAGE_LIMIT: int = 20
GUEST_DEFAULT_TIMEZONE: str = "Asia/Kolkata"


# ============================================================================
# Upstream Completion API
# ============================================================================

OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
DEFAULT_MODEL: str = "openrouter/sonoma-dusk-alpha"
DEFAULT_VISION_MODEL: str = "openai/gpt-4o-mini"
DEFAULT_MAX_TOKENS: int = 500
DEFAULT_TEMPERATURE: float = 0.7
DEFAULT_RATE_LIMIT: int = 60  # requests per minute per owner, 0 disables
DEFAULT_COMPLETION_TIMEOUT_SECONDS: float = 30.0
APP_TITLE: str = "VaaniAI Hindi Chatbot"


# ============================================================================
# Sessions
# ============================================================================

SESSION_PLACEHOLDER_TITLE: str = "नई चैट"
SESSION_TITLE_MAX_CHARS: int = 30
IMAGE_ONLY_CAPTION: str = "इस चित्र के बारे में बताएं"


# ============================================================================
# Bot Notices
# ============================================================================

PLAN_LIMIT_NOTICE: str = "😔 आपकी मासिक संदेश सीमा समाप्त हो गई है। कृपया अपना प्लान अपग्रेड करें। 📈"
GUEST_LIMIT_NOTICE: str = "😔 आज के आपके मुफ़्त संदेश समाप्त हो गए हैं। अधिक संदेशों के लिए कृपया रजिस्टर करें। 📝"
RATE_LIMIT_NOTICE: str = "⏳ आप बहुत तेज़ी से संदेश भेज रहे हैं। कृपया एक मिनट बाद पुनः प्रयास करें। 🙏"
CONFIG_ERROR_NOTICE: str = "🔑 API कॉन्फ़िगरेशन की समस्या है। कृपया एडमिन से संपर्क करें। 🛠️"

FALLBACK_ERROR_NOTICES: List[str] = [
    "🙏 क्षमा करें, AI सेवा में समस्या है। कृपया थोड़ी देर बाद पुनः प्रयास करें। 🔧",
    "🤖 API कनेक्शन की समस्या है। कृपया बाद में पुनः प्रयास करें। 🔄",
    "🙏 क्षमा करें, अभी मैं उत्तर नहीं दे सकता। कृपया पुनः प्रयास करें। 🔄",
]
