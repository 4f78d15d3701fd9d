"""Menu generation pipeline: prompts, completion, cleanup, validation, repair, retries and the offline generator."""
