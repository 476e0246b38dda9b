"""Pure rooftop solar sizing, production and financial engine."""
