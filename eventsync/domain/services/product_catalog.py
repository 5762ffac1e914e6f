"""Product classification - maps payment-provider product names to CRM product types."""

DEFAULT_PRODUCT_TYPE = "guia_ia"

# Checked in order; the first matching keyword wins
PRODUCT_KEYWORDS = (
    (("consultoria",), "consultoria"),
    (("mentoria coletiva", "mentoria_coletiva"), "mentoria_coletiva"),
    (("mentoria individual", "mentoria_individual"), "mentoria_individual"),
    (("idea", "curso"), "curso_idea"),
    (("guia", "ia para advogados"), "guia_ia"),
    (("prompt", "código"), "codigo_prompts"),
    (("combo", "ebook"), "combo_ebooks"),
)

PRODUCT_LABELS = {
    "consultoria": "Consultoria IDEA",
    "mentoria_coletiva": "Mentoria Coletiva",
    "mentoria_individual": "Mentoria Individual",
    "curso_idea": "Curso IDEA",
    "guia_ia": "Guia de IA",
    "codigo_prompts": "Código dos Prompts",
    "combo_ebooks": "Combo de E-books",
}


def classify_product(product_name: str) -> str:
    """
    Map a product name to a product type by keyword.

    Args:
        product_name: Product name as sent by the payment provider

    Returns:
        Product type, DEFAULT_PRODUCT_TYPE when nothing matches
    """
    lower_name = product_name.lower()
    for keywords, product_type in PRODUCT_KEYWORDS:
        if any(keyword in lower_name for keyword in keywords):
            return product_type
    return DEFAULT_PRODUCT_TYPE


def product_label(product_type: str) -> str:
    """Human-readable label for a product type."""
    return PRODUCT_LABELS.get(product_type, product_type)
