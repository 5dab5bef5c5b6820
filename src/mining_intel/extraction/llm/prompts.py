# ABOUTME: Prompt templates for leadership and asset extraction from crawled page text
# ABOUTME: Templates use $company_name and $content placeholders filled by render_prompt

from string import Template

LEADERSHIP_PROMPT = Template(
    """You are a mining industry intelligence analyst. Extract all executives and board members for the company "$company_name" from the following web page content.

For each person, provide:
- "name": Full name
- "title": Their role/title at the company (e.g., "CEO", "Non-Executive Director", "Chief Financial Officer")
- "expertise_tags": An array of 1-4 expertise areas from this list: Geology, Metallurgy, Mining Engineering, Finance, Corporate Governance, Environmental, Legal, Marketing, Operations, Human Resources, Technology, Exploration, Project Development, Health & Safety. Only assign tags that are clearly supported by their bio.
- "summary_bullets": Exactly 3 short bullet points (1 sentence each) focusing on their project experience, operational history, and technical accomplishments in mining/resources. If info is limited, summarize what is available.

Return ONLY a JSON array. No markdown, no explanation. Example format:
[
  {
    "name": "Jane Doe",
    "title": "Chief Executive Officer",
    "expertise_tags": ["Mining Engineering", "Operations", "Finance"],
    "summary_bullets": [
      "Led development of the Ridgeview Copper Project from feasibility to first production.",
      "Over 20 years of operational experience across copper and gold mining in Chile and Peru.",
      "Previously served as COO of a mid-tier producer running three open-pit operations."
    ]
  }
]

If no leadership/board data is found, return an empty array: []

Web page content:
$content"""
)

ASSETS_PROMPT = Template(
    """You are a mining industry intelligence analyst with deep knowledge of global mine locations. Extract all mining assets, operations, and projects for the company "$company_name" from the following web page content.

For each asset/mine/project, provide:
- "name": Name of the mine or project
- "commodities": Array of commodities produced (e.g., ["gold"], ["copper", "gold"], ["lithium"])
- "status": One of: "operating", "developing", "exploration", "closed", "care_and_maintenance", "unknown"
- "country": Country where the asset is located
- "state_province": State or province (if available)
- "town": Nearest town or locality (if available)
- "latitude": Geographic latitude as a decimal number. Use your knowledge of the mine's location if not stated on the page.
- "longitude": Geographic longitude as a decimal number. Use your knowledge of the mine's location if not stated on the page.

Coordinate rules:
1. If the page gives explicit coordinates, use them.
2. If the page does not give coordinates but you know this mine, give your best approximate coordinates for the mine site.
3. If the asset is a region or portfolio grouping rather than a single mine, use the geographic centre of that region or country.
4. Only give coordinates you are confident in.
5. Set latitude/longitude to null if there is no location information at all, not even a country.

Extraction rules:
- Extract every asset, mine, operation, and project mentioned. Do not stop early.
- Include regional operations and portfolio groupings.

Return ONLY a JSON array. No markdown, no explanation. Example format:
[
  {
    "name": "Ridgeview Copper Project",
    "commodities": ["copper", "molybdenum"],
    "status": "developing",
    "country": "Chile",
    "state_province": "Antofagasta",
    "town": "Calama",
    "latitude": -22.45,
    "longitude": -68.93
  }
]

If no assets are found, return an empty array: []

Web page content:
$content"""
)


def render_prompt(template: Template, company_name: str, content: str) -> str:
    """Fill a prompt template; placeholder-like text inside the content is left alone."""
    return template.safe_substitute(company_name=company_name, content=content)
