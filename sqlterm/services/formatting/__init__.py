"""Result formatting."""
