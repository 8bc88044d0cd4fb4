"""guestchat - session orchestration for AI-assisted guest onboarding interviews."""
