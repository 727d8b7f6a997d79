"""Keyword-driven test assistant that works without any backend."""

from __future__ import annotations

import random

JOKES = [
    "Why don't scientists trust atoms? Because they make up everything!",
    "Why did the scarecrow win an award? Because he was outstanding in his field!",
    "What's a programmer's favorite place to hang out? The foo bar.",
    "Why don't programmers like nature? It has too many bugs.",
]


def canned_reply(message: str, rng: random.Random | None = None) -> str:
    text = message.lower()
    if "hello" in text or "hi" in text:
        return "Hello! I'm a test AI assistant. How can I help you today?"
    if "help" in text:
        return (
            "I'm a test assistant that simulates AI responses. You can ask me questions, "
            "and I'll provide simple canned responses based on keywords in your message. "
            "Try asking about 'weather', my 'name', or request a 'joke'."
        )
    if "weather" in text:
        return (
            "I don't have real-time weather data, but I can tell you that "
            "it's always sunny in the test environment!"
        )
    if "name" in text:
        return "My name is TestBot, a simulated AI assistant."
    if "joke" in text:
        return (rng or random).choice(JOKES)
    return (
        f'This is a test response to: "{message}". I\'m a simulated AI assistant. '
        "Try asking about 'help', 'weather', 'name', or request a 'joke'."
    )
