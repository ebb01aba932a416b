"""PromptShelf — a desktop prompt library with mnemonic quick-insert and SSH sync."""
