"""
LLM prompt templates for product recommendations.

Every provider receives the same system and user prompt so that responses
can be validated by one set of rules regardless of backend. The prompt
asks for a bare JSON object; providers without a JSON mode may still wrap
it in markdown fences, which the validator strips.
"""

from shopmate.core.models import Product


RECOMMENDATION_SYSTEM_PROMPT = (
    "You are a helpful product recommendation assistant. Always respond with "
    "valid JSON in the exact format requested. Do not include any additional "
    "text or formatting outside the JSON object."
)


RECOMMENDATION_USER_TEMPLATE = """You are a product recommendation expert. Given the following product, suggest 3-4 related or complementary products that a customer might be interested in.

Product: {name}
Description: {description}
Price: {price}
Category: {category}

Please respond with a JSON object containing an array of recommendations. Each recommendation should have:
- name: The product name
- reason: A brief explanation (1-2 sentences) of why this product complements or relates to the original

Format your response as valid JSON:
{{
  "recommendations": [
    {{"name": "Product Name", "reason": "Brief explanation"}},
    {{"name": "Another Product", "reason": "Another brief explanation"}},
    {{"name": "Third Product", "reason": "Third brief explanation"}}
  ]
}}

Important: Respond ONLY with the JSON object, no additional text or formatting."""


# Fixed product used by adapter health checks
HEALTH_CHECK_PRODUCT = Product(
    id="health-check",
    name="Test Product",
    description="A test product for health check",
    price=99.99,
    category="Test",
)


def _format_price(price: float | None) -> str:
    if price is None:
        return "Price not specified"
    if isinstance(price, (int, float)) and not isinstance(price, bool):
        return f"${price:,.2f}"
    return str(price)


def build_recommendation_prompt(product: Product) -> str:
    """Render the user prompt for a product."""
    return RECOMMENDATION_USER_TEMPLATE.format(
        name=product.name.strip(),
        description=product.description or "No description available",
        price=_format_price(product.price),
        category=product.category or "Not specified",
    )
