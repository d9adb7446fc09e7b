"""Core rewriting engine: gate, locators, admission, rewriter and loader patches."""
