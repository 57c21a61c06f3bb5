"""
Instructions and response schemas sent to Gemini.

Response schemas use the OpenAPI subset Gemini accepts in
``generationConfig.responseSchema``.
"""

from brandforge.schemas import BusinessRequest, BrandIdentity, ProductIdea

REFERENCE_IMAGE_SUFFIX = "Use the provided image as the strict reference for the logo/brand symbol."


LOCATION_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "isValid": {"type": "BOOLEAN"},
        "normalizedName": {"type": "STRING"},
    },
    "required": ["isValid", "normalizedName"],
}

_PRODUCT_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "name": {"type": "STRING"},
        "description": {"type": "STRING"},
        "price": {"type": "NUMBER"},
        "visualPrompt": {"type": "STRING"},
    },
    "required": ["name", "description", "price", "visualPrompt"],
}

_BUDGET_ITEM_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "category": {"type": "STRING"},
        "item": {"type": "STRING"},
        "cost": {"type": "NUMBER"},
        "frequency": {"type": "STRING", "enum": ["One-time", "Monthly", "Yearly"]},
        "reasoning": {"type": "STRING"},
        "searchQuery": {"type": "STRING"},
    },
    "required": ["category", "item", "cost", "frequency", "reasoning", "searchQuery"],
}

_BUDGET_PLAN_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "items": {"type": "ARRAY", "items": _BUDGET_ITEM_SCHEMA},
        "totalEstimatedMonthly": {"type": "NUMBER"},
        "totalOneTimeStartup": {"type": "NUMBER"},
        "estimatedMonthlyRevenue": {"type": "NUMBER"},
        "breakEvenMonths": {"type": "NUMBER"},
        "advice": {"type": "STRING"},
        "currency": {"type": "STRING"},
        "isFeasible": {"type": "BOOLEAN"},
        "suggestedMinimumBudget": {"type": "NUMBER"},
        "missingBudget": {"type": "NUMBER"},
    },
    "required": [
        "items",
        "totalEstimatedMonthly",
        "totalOneTimeStartup",
        "estimatedMonthlyRevenue",
        "breakEvenMonths",
        "advice",
        "currency",
        "isFeasible",
        "suggestedMinimumBudget",
        "missingBudget",
    ],
}

BRAND_IDENTITY_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "companyName": {"type": "STRING"},
        "slogan": {"type": "STRING"},
        "description": {"type": "STRING", "description": "Executive summary"},
        "locationValid": {"type": "BOOLEAN"},
        "normalizedLocation": {"type": "STRING"},
        "businessType": {"type": "STRING", "enum": ["Service", "Product"]},
        "colorPalette": {"type": "ARRAY", "items": {"type": "STRING"}},
        "logoStyle": {"type": "STRING"},
        "products": {"type": "ARRAY", "items": _PRODUCT_SCHEMA},
        "budgetPlan": _BUDGET_PLAN_SCHEMA,
    },
    "required": [
        "companyName",
        "slogan",
        "description",
        "colorPalette",
        "products",
        "logoStyle",
        "budgetPlan",
        "locationValid",
        "normalizedLocation",
        "businessType",
    ],
}


def location_prompt(location: str) -> str:
    return f"""
Validate if the following location is a real, recognized place (city, state, or country).
Input: "{location}".
If it is real, return the formal English name (e.g., "nyc" -> "New York, NY, USA").
If it is fictional or nonsense (e.g., "SnowTown", "Narnia", "Gothamburg"), mark as invalid.
"""


def brand_identity_prompt(request: BusinessRequest) -> str:
    loc = request.location
    money = f"{request.budget:g} {request.currency}"

    name_rule = (
        f'- Use the Company Name: "{request.existing_name}"'
        if request.existing_name
        else "- Generate a professional Company Name."
    )
    slogan_rule = (
        f'- Use the Slogan: "{request.existing_slogan}"'
        if request.existing_slogan
        else "- Generate a memorable Slogan."
    )
    color_rule = (
        f"- Incorporate these colors: {request.existing_colors}"
        if request.existing_colors
        else "- Generate a color palette suitable for the industry."
    )

    return f"""
Act as a brutally honest Senior Business Consultant and Financial Analyst.

The user wants to launch a business in: {loc}.
The business concept is: "{request.description}".
Total available capital: {money}.

User provided constraints:
{name_rule}
{slogan_rule}
{color_rule}

Task 1: Brand Identity
Refine the concept, generate missing names/slogans.
IMPORTANT: For 'logoStyle', provide a visual description that can be used to generate a logo.

Task 2: REALISTIC Location-Aware Budgeting & Projections
Create a detailed budget. You MUST analyze real-world costs in {loc}.
Use {request.currency} as the budget currency.

Search Query Generation:
For each budget item, provide a 'searchQuery' that a user could paste into Google to find real listings.
Example: Item "Retail Space Rent", Search Query: "commercial retail space for rent in [Location] under [Cost]".

Financial Projections:
- Estimate 'estimatedMonthlyRevenue' based on market size in {loc} for this niche.
- Calculate 'breakEvenMonths': How many months until the cumulative profit covers the 'totalOneTimeStartup' costs?

CRITICAL FEASIBILITY CHECK:
Is {money} actually enough to start this specific business in {loc}?
Set 'suggestedMinimumBudget' to the minimum viable capital and 'isFeasible' accordingly.

Task 3: Core Offerings (Products or Services)
Analyze the business concept ('{request.description}').

Determine 'businessType': 'Service' or 'Product'.

IF it is a SERVICE-BASED business (e.g., Gym, Tutoring, Subscription, Consulting, Salon, Cleaning):
- Generate exactly 3 'Service Packages' or 'Membership Tiers'.
- 'visualPrompt': Describe a visual representation of the service level (e.g. "A gold tier membership card", "A glowing shield for security service").

IF it is a PRODUCT-BASED business (e.g., Bakery, Clothing Brand, Tech Store):
- Generate exactly 3 distinct physical products.
- 'visualPrompt': Describe the product shot.

Common Rules:
- Assign a realistic 'price' for {loc}.
- The 'visualPrompt' MUST instruct to place the company logo naturally in the scene (e.g., on a wall, on a card, on the packaging).
"""


def logo_prompt(identity: BrandIdentity) -> str:
    return (
        f'A professional logo for "{identity.company_name}". '
        f"Style: {identity.logo_style}. Minimalist, vector art, white background."
    )


def offering_prompt(product: ProductIdea, business_type: str, with_logo: bool = True) -> str:
    if business_type == "Service":
        if with_logo:
            # the logo evolves into a representation of the service tier
            return (
                "A highly detailed, 3D rendered evolution of the provided logo. "
                f'The logo is transforming into a representation of "{product.name}". '
                f"Concept: {product.visual_prompt}. "
                "Style: Cyberpunk, glassmorphism, intricate 8k texture, glowing edges, cinematic lighting. "
                "The shape should resemble the original logo but be significantly more complex and premium."
            )
        return (
            f'A highly detailed, 3D rendered brand emblem representing "{product.name}". '
            f"Concept: {product.visual_prompt}. "
            "Style: Cyberpunk, glassmorphism, intricate 8k texture, glowing edges, cinematic lighting."
        )

    prompt = (
        f"High-quality commercial photography of {product.name}: {product.visual_prompt}. "
        "Cinematic lighting, 8k resolution, photorealistic, commercial style."
    )
    if with_logo:
        prompt += " Incorporate the provided logo naturally into the scene (e.g. on the product packaging or label)."
    return prompt


def with_reference(prompt: str) -> str:
    return f"{prompt.rstrip('. ')}. {REFERENCE_IMAGE_SUFFIX}"
