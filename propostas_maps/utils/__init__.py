"""Small helpers shared across stages (formatting, key cleaning, text folding)."""
