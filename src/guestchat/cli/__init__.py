"""guestchat command-line interface."""
