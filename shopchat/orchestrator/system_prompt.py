"""System prompt builder for store chat assistants.

Builds the model's system prompt from the store's persona and policy
fields plus the catalog slice fetched for this turn. The prompt is
rebuilt on every message because catalog state changes between turns.

Example:
    prompt = build_system_prompt(products, store)
"""

import re

from shopchat.catalog.models import Product, StoreConfig

_WHITESPACE = re.compile(r"\s+")

NO_PRODUCTS_LINE = "No products are currently available."

_GUIDELINES = """\
## Guidelines

- Only recommend products from the catalog above, by name and price. Never invent or suggest items that are not listed.
- When asked about shipping or returns, use the store policy text above.
- If you cannot answer a question from the information provided, say so and suggest contacting the store's human support team.
- Check inventory information before claiming a product or variant is available.
- Keep answers short and helpful."""


def _one_line(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def format_product_line(product: Product) -> str:
    """Render a product as ``name - price (category): description``."""
    return (
        f"{_one_line(product.name)} - {product.price} "
        f"({_one_line(product.category)}): {_one_line(product.description)}"
    )


def _build_catalog_section(products: list[Product]) -> str:
    """Build the catalog block, one line per product in fetch order."""
    lines = ["## Product Catalog", ""]
    if not products:
        lines.append(NO_PRODUCTS_LINE)
    else:
        lines.extend(format_product_line(p) for p in products)
    return "\n".join(lines)


def _build_policy_section(store: StoreConfig) -> str:
    not_provided = "Not provided. Refer customers to the store's support team."
    return "\n".join(
        [
            "## Store Policies",
            "",
            f"Shipping policy: {store.shipping_policy or not_provided}",
            f"Returns policy: {store.returns_policy or not_provided}",
        ]
    )


def build_system_prompt(products: list[Product], store: StoreConfig) -> str:
    """Build the complete system prompt for one chat turn.

    Args:
        products: Catalog data for this turn, in the order fetched.
        store: The store the assistant speaks for.

    Returns:
        The rendered system prompt.
    """
    persona = (
        f"You are {store.bot_name}, the shopping assistant for {store.name}. "
        f"Use a {store.bot_tone} tone and reply in the language with code "
        f"'{store.bot_language}'."
    )
    return "\n\n".join(
        [
            persona,
            _build_catalog_section(products),
            _build_policy_section(store),
            _GUIDELINES,
        ]
    )
