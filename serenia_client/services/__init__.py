"""Client services: session, conversation, submission, subscription."""
