"""Chat orchestration: intent, prompt, model boundary and turn runner."""
