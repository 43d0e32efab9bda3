"""Rule-based chatbot."""
