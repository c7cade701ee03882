"""Third-party API clients: Composio (Gmail, Calendar), Hunter.io, Apollo.io."""
