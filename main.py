#!/usr/bin/env python3
"""
Cart Tax Engine - Entry Point

Multi-rate tax calculation for order, invoice and point-of-sale carts,
with tax-inclusive and tax-exclusive pricing.

Usage:
    python main.py calculate --items examples/cart.csv --taxes examples/taxes.json
    python main.py calculate --items examples/cart.csv --taxes examples/taxes.json --tax-included
    python main.py taxes --taxes examples/taxes.json
    python main.py preference --set on
"""

from cart_tax.cli import main

if __name__ == "__main__":
    main()
