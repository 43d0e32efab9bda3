"""Canned-response selector for the CropAI assistant."""

from dataclasses import dataclass
from typing import Callable, List


@dataclass(frozen=True)
class ResponseRule:
    """One row of the response table."""
    category: str
    matches: Callable[[str], bool]
    reply: str


def _any(*keywords: str) -> Callable[[str], bool]:
    return lambda text: any(k in text for k in keywords)


def _all_of(first: str, *alternatives: str) -> Callable[[str], bool]:
    return lambda text: first in text and any(k in text for k in alternatives)


CREATOR_REPLY = (
    "This project was developed by Aditya, Harsh, Atharva & Sairaj as their Final Year "
    "Project 2025 from AI&DS Department, TSEC Mumbai University."
)
PROJECT_REPLY = (
    "This is a RAG-Enabled Early Disease & Pest Detection system for crops. It uses AI and "
    "machine learning to identify crop diseases and pests from images and provides "
    "treatment recommendations."
)
USAGE_REPLY = (
    "Here's how to use CropAI:\n"
    "1. Click 'Upload Crop Image' or 'Use Camera'\n"
    "2. Select or capture a clear image of your crop\n"
    "3. Click 'Analyze Image'\n"
    "4. Get instant AI-powered diagnosis and treatment recommendations!"
)
TECHNOLOGY_REPLY = (
    "CropAI uses advanced technologies including:\n"
    "• Convolutional Neural Networks (CNN) for image analysis\n"
    "• Retrieval-Augmented Generation (RAG) for contextual responses\n"
    "• Computer Vision for crop disease detection\n"
    "• Generative AI for treatment recommendations"
)
CONTACT_REPLY = (
    "You can contact the team at:\n"
    "📧 Email: adit1809pro@gmail.com\n"
    "📞 Phone: +91 8369561904\n"
    "📍 Location: TSEC, Mumbai\n"
    "Or visit the Contact page for more options!"
)
RELIABILITY_REPLY = (
    "CropAI uses trained CNN models with high accuracy rates. However, this is a student "
    "project for educational purposes. For critical agricultural decisions, please consult "
    "with agricultural experts."
)
COST_REPLY = (
    "Yes! CropAI is completely free to use. This is an educational project created by "
    "students to help farmers and agricultural enthusiasts."
)
GREETING_REPLY = (
    "Hello! Welcome to CropAI. I'm here to help you understand how our crop disease "
    "detection system works. What would you like to know?"
)
THANKS_REPLY = (
    "You're welcome! Feel free to ask if you have any other questions about CropAI or "
    "crop disease detection."
)
FALLBACK_REPLY = (
    "I can help you with information about:\n"
    "• Who created this project\n"
    "• What CropAI does\n"
    "• How to use the system\n"
    "• Technologies used\n"
    "• Contact information\n"
    "• And more! Just ask me anything about CropAI."
)
WELCOME_MESSAGE = (
    "Hi! I'm CropAI Assistant. I can help you with information about this project. "
    "Ask me anything!"
)

# Order matters: the first matching rule wins. Keywords are plain substring
# matches on the lower-cased input.
RESPONSE_TABLE: List[ResponseRule] = [
    ResponseRule("creator", _any("who made", "creator", "developer"), CREATOR_REPLY),
    ResponseRule("project", _all_of("what", "project", "website"), PROJECT_REPLY),
    ResponseRule("usage", _all_of("how", "use", "work", "steps"), USAGE_REPLY),
    ResponseRule("technology", _any("technology", "tech", "ai"), TECHNOLOGY_REPLY),
    ResponseRule("contact", _any("contact", "reach", "email"), CONTACT_REPLY),
    ResponseRule("reliability", _any("accuracy", "reliable", "trust"), RELIABILITY_REPLY),
    ResponseRule("cost", _any("free", "cost", "price"), COST_REPLY),
    ResponseRule("greeting", _any("hello", "hi", "hey"), GREETING_REPLY),
    ResponseRule("thanks", _any("thank", "thanks"), THANKS_REPLY),
]


FALLBACK_RULE = ResponseRule("fallback", lambda text: True, FALLBACK_REPLY)


def select_rule(text: str) -> ResponseRule:
    """First rule of the table matching the message, else the fallback."""
    message = text.lower()
    for rule in RESPONSE_TABLE:
        if rule.matches(message):
            return rule
    return FALLBACK_RULE


def classify(text: str) -> str:
    """Name of the category a message falls into."""
    return select_rule(text).category


def respond(text: str) -> str:
    """Pick the canned reply for a user message."""
    return select_rule(text).reply
