"""
Instruction text sent with the user's photo.
"""
DEFAULT_CLOTHING = "black formal suit and tie"

ID_PHOTO_PROMPT_TEMPLATE = """Task: Photo editing. Create a professional passport ID photo.

STRICT RULES:
1. FACE PRESERVATION: DO NOT CHANGE THE FACE. Keep the facial features, skin texture, and head shape 100% IDENTICAL to the original. This is the most important rule.
2. CLOTHING: Replace the outfit with a {clothing}. It must look realistic and fit the neck/shoulders perfectly.
3. BACKGROUND: Change background to a solid clean WHITE color.
4. CROP: Passport size (3:4 ratio), head centered, shoulders visible.
5. LIGHTING: Ensure even, professional lighting on the face."""


def build_id_photo_prompt(clothing: str | None = None, default_clothing: str = DEFAULT_CLOTHING) -> str:
    # Collapse whitespace so user input cannot inject extra prompt sections
    clothing = " ".join((clothing or "").split()) or default_clothing
    return ID_PHOTO_PROMPT_TEMPLATE.format(clothing=clothing)
