# /core/article_types.py

import hashlib
import re
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from core.logger import get_logger

logger = get_logger(__name__)

GENERAL_ENTITY_TYPES = (
    "Person", "Organization", "Location", "Technology", "Event", "Concept", "Date",
)

INVESTMENT_ENTITY_TYPES = (
    "Company", "Investor", "Person", "Fund", "Valuation", "Investment",
    "Round", "Sector", "Date", "Location", "Metric",
)

REVENUE_ENTITY_TYPES = (
    "RevenueMetric", "RevenueStream", "Product", "Service", "Customer",
    "CustomerSegment", "Channel", "Market", "GeographicMarket", "Organization",
    "Date", "TimePeriod", "Concept", "Metric",
)

MYSTERY_ENTITY_TYPES = (
    "Person", "Location", "Event", "Concept", "Date", "Evidence", "Clue",
)

SAME_LANGUAGE_RULE = (
    "IMPORTANT: Keep all entity names and descriptions in the SAME LANGUAGE as the "
    "original article. Do NOT translate anything."
)

DEDUPLICATION_RULES = """- **IMPORTANT: Each unique entity should appear ONLY ONCE** - Do not create duplicate entities
- If the same person, organization, location or concept is mentioned multiple times, use the SAME entity ID
- Name variants, honorifics and case differences refer to the same entity: "Dr. Jane Goodall", "Jane Goodall" and "jane goodall" are ONE entity
- Thai honorifics like "พี่" (Pee) or "คุณ" (Khun) are titles: "พี่จูน" and "จูน" are ONE entity named "จูน"
- A list such as "แนน เนี้ยว และ เก้า" names THREE separate people"""

SCHEMA_RULE = "CRITICAL: Use ONLY the exact entity type names listed above. The schema will reject other types."


@dataclass(frozen=True)
class ArticleTypeConfig:
    id: str
    label: str
    description: str
    system_prompt: str
    entity_types: Tuple[str, ...]


_GENERAL_PROMPT = f"""You are an expert analyst specializing in news, security incidents, and business intelligence.
Analyze the following article and extract a knowledge graph with rich context.

{SAME_LANGUAGE_RULE}

Extract:
1. **Entities** - Use ONLY these entity types (enforced by schema):
   - **Person**: Individuals mentioned by name (executives, team members, employees)
   - **Organization**: Companies, institutions, departments, divisions, teams, labs
   - **Location**: Countries, cities, regions, offices
   - **Technology**: Software, systems, platforms
   - **Event**: Breaches, announcements, incidents
   - **Concept**: Roles, positions, business functions, services
   - **Date**: When events occurred

   {SCHEMA_RULE}

2. **Relationships** with semantic meaning:
   - For people: "works-at", "lives-in", "born-in", "studies-at", "knows", "married-to", "child-of", "parent-of"
   - For organizations: "leads", "member-of", "reports-to", "manages", "part-of", "located-in"
   - For business/tech: "attacked-by", "victim-of", "owns", "uses", "affected-by", "leaked-from", "reported-by", "contains", "targets", "supplies-to", "competes-with", "partners-with"
   - For events: "occurred-on", "happened-at", "involves"
   - Avoid generic "mentions" or "related-to" unless no specific relationship exists
   - Include relationship strength (strong/medium/weak)

3. **Metadata**:
   - Entity sentiment: positive (good news), negative (victim/problem), neutral
   - Entity importance: high (key players), medium (supporting), low (minor mentions)

Rules:
- Extract ALL entities mentioned in the article, even if the content is short
{DEDUPLICATION_RULES}
- Create meaningful relationships showing connections between entities
- Mark victims/attackers with appropriate sentiment
- Prioritize entities by their importance to the story"""

_INVESTMENT_PROMPT = f"""You are an investment analyst expert specializing in venture capital, private equity, and corporate investments.
Analyze the following investment-related content and extract a comprehensive knowledge graph.

{SAME_LANGUAGE_RULE}

Extract:
1. **Investment Entities** - Use ONLY these entity types (enforced by schema):
   - **Company**: Target companies, portfolio companies, startups
   - **Investor**: VC firms, PE firms, angel investors, corporate investors
   - **Person**: CEOs, founders, investment partners, board members
   - **Fund**: Investment funds, venture funds
   - **Valuation**: Pre-money, post-money valuations, market cap
   - **Investment**: Funding amounts, deal sizes, investment terms
   - **Round**: Seed, Series A/B/C, IPO, etc.
   - **Sector**: Industry sectors, market segments
   - **Date**: Investment dates, announcement dates, closing dates
   - **Location**: Geographic locations, headquarters
   - **Metric**: Revenue multiples, P/E ratios, IRR, ROI

   {SCHEMA_RULE}

2. **Investment Relationships**:
   - "invests-in" (Investor → Company), "raises-funding" (Company → Round), "leads-round" (Investor → Round)
   - "participates-in" (Investor → Round), "valued-at" (Company → Valuation), "acquires" (Acquirer → Target)
   - "owns-stake" (Investor → Company), "founded-by" (Company → Founder), "sits-on-board" (Person → Company)
   - "operates-in" (Company → Sector), "competes-with" (Company → Competitor), "exits-from" (Investor → Company)

3. **Investment Metadata**:
   - Sentiment: positive (successful raise, unicorn status), negative (down round, failed deal), neutral
   - Importance: high (major deals, unicorns), medium (standard rounds), low (minor investments)

Rules:
- Extract ALL investors and their investment amounts
{DEDUPLICATION_RULES}
- Extract ALL valuation figures (pre-money, post-money, market cap)
- Show ownership structure, equity stakes and co-investor syndicates
- Connect companies to their sectors and markets"""

_REVENUE_PROMPT = f"""You are a revenue operations analyst expert specializing in sales performance and revenue analytics.
Analyze the following revenue-related content and extract a comprehensive knowledge graph.

{SAME_LANGUAGE_RULE}

Extract:
1. **Revenue Entities** - Use ONLY these entity types (enforced by schema):
   - **RevenueMetric**: Total Revenue, Net Revenue, ARR, MRR (aggregate revenue figures)
   - **RevenueStream**: Business segments, product lines (e.g., Data Center, Gaming, Automotive)
   - **Product**: Individual products or specific product names
   - **Service**: Individual services or service offerings
   - **Customer**: Specific customer names or customer types
   - **CustomerSegment**: Customer categories (Enterprise, SMB, Consumer)
   - **Channel**: Sales channels (Direct sales, Partners, Online, Retail)
   - **Market**: Markets, regions, territories
   - **GeographicMarket**: Geographic regions, country markets
   - **Organization**: The main company name ONLY
   - **Date**: Specific dates
   - **TimePeriod**: Quarters, fiscal years, months (Q3 FY25, 2024, etc.)
   - **Concept**: Growth rates, percentages, dollar amounts, KPIs
   - **Metric**: Financial metrics and KPIs

   {SCHEMA_RULE}

2. **Revenue Relationships**:
   - "generates-revenue" (Product/Service → Revenue Amount), "contributes-to" (Revenue Stream → Total Revenue)
   - "sells-through" (Product → Channel), "targets-segment" (Product → Customer Segment)
   - "operates-in" (Company → Geographic Market), "grows-by" (Revenue → Growth Rate)
   - "serves-customers" (Company → Customer Segment), "part-of" (Revenue Stream → Business Unit)
   - "compared-to" (Current Period → Previous Period)

3. **Revenue Metadata**:
   - Sentiment: positive (growth, expansion), negative (decline, churn), neutral (stable)
   - Importance: high (major revenue streams), medium (growing segments), low (minor contributors)

Rules:
- Extract ALL revenue streams and their individual contributions
{DEDUPLICATION_RULES}
- Extract revenue breakdown by product, customer segment, and geography
- Extract growth rates for each revenue stream (Q/Q, Y/Y) and any targets or forecasts"""

_MYSTERY_PROMPT = f"""You are an expert detective and logic analyst specializing in mysteries, investigations, and crime solving.
Analyze the following mystery/investigation content and extract a knowledge graph that reveals clues and contradictions.

{SAME_LANGUAGE_RULE}

Extract:
1. **Entities** - Use ONLY these entity types (enforced by schema):
   - **Person**: Suspects, victims, witnesses, investigators (by name or role)
   - **Location**: Crime scenes, rooms, buildings, places where events occurred
   - **Event**: Crimes, murders, thefts, investigations, arrests
   - **Concept**: Activities, alibis, statements, roles, motives
   - **Date**: When events occurred, times of day (e.g., "Sunday midday", "3 PM")
   - **Evidence**: Physical evidence, proof, contradictions
   - **Clue**: Information that helps solve the mystery, suspicious details

   If an activity does not match the time or facts (e.g., "making breakfast" at midday), create an Evidence entity explaining the contradiction.

   {SCHEMA_RULE}

2. **Relationships** with semantic meaning:
   - For people: "was-doing" (Person → Concept), "stated-that" (Person → Concept), "witnessed" (Person → Event), "suspects" (Person → Person)
   - For events: "occurred-on" (Event → Date), "happened-at" (Event → Location), "involves" (Event → Person), "investigated-by" (Event → Person)
   - For evidence: "contradicts" (Evidence/Clue → Concept/Date), "points-to" (Evidence → Person), "proves" (Evidence → Concept), "reveals" (Clue → Person)
   - For investigations: "arrested-for", "guilty-of", "accused-of" (Person → Event)
   - Every "contradicts" relationship MUST describe what the contradiction is and whom it implicates
   - Include relationship strength (strong/medium/weak)

3. **Metadata**:
   - Entity sentiment: positive (innocent, helpful), negative (guilty, suspicious), neutral
   - Entity importance: high (key suspects, critical clues), medium (witnesses), low (minor details)

Rules:
- Extract ALL suspects with their alibis/activities, and ALL clues and evidence
{DEDUPLICATION_RULES}
- Show the reasoning path from clue to conclusion
- Extract the solution if explicitly stated in the article"""


ARTICLE_TYPES: Dict[str, ArticleTypeConfig] = {
    "general": ArticleTypeConfig(
        id="general",
        label="General Article",
        description="General news, business intelligence, or any other content",
        system_prompt=_GENERAL_PROMPT,
        entity_types=GENERAL_ENTITY_TYPES,
    ),
    "investment": ArticleTypeConfig(
        id="investment",
        label="Investment Analysis",
        description="Investment opportunities, funding rounds, M&A, valuations",
        system_prompt=_INVESTMENT_PROMPT,
        entity_types=INVESTMENT_ENTITY_TYPES,
    ),
    "revenue-analysis": ArticleTypeConfig(
        id="revenue-analysis",
        label="Revenue Analysis",
        description="Revenue breakdowns, sales performance, customer segments",
        system_prompt=_REVENUE_PROMPT,
        entity_types=REVENUE_ENTITY_TYPES,
    ),
    "mystery-investigation": ArticleTypeConfig(
        id="mystery-investigation",
        label="Mystery & Investigation",
        description="Murder mysteries, detective stories, crime investigations, logic puzzles",
        system_prompt=_MYSTERY_PROMPT,
        entity_types=MYSTERY_ENTITY_TYPES,
    ),
}


def get_article_type_config(article_type: Optional[str]) -> ArticleTypeConfig:
    """Returns the built-in config for an article type, defaulting to 'general'."""
    config = ARTICLE_TYPES.get(article_type or "general")
    if config is None:
        logger.warning("Unknown article type, using 'general'", extra={"article_type": article_type})
        return ARTICLE_TYPES["general"]
    return config


# --- Colours ---

ARTICLE_COLOR = "#3b82f6"

BASE_COLORS: Dict[str, str] = {
    "Article": ARTICLE_COLOR,
    # General
    "Person": "#10b981",
    "Organization": "#8b5cf6",
    "Location": "#f59e0b",
    "Technology": "#06b6d4",
    "Event": "#ef4444",
    "Concept": "#ec4899",
    "Date": "#6366f1",
    # Investment
    "Company": "#3b82f6",
    "Investor": "#8b5cf6",
    "Fund": "#6366f1",
    "Valuation": "#10b981",
    "Investment": "#14b8a6",
    "Round": "#06b6d4",
    "Sector": "#a855f7",
    "Metric": "#3b82f6",
    # Revenue
    "RevenueMetric": "#10b981",
    "RevenueStream": "#14b8a6",
    "Product": "#3b82f6",
    "Service": "#06b6d4",
    "Customer": "#a855f7",
    "CustomerSegment": "#a855f7",
    "Channel": "#f59e0b",
    "Market": "#f97316",
    "GeographicMarket": "#f97316",
    "TimePeriod": "#6366f1",
    # Mystery
    "Evidence": "#dc2626",
    "Clue": "#eab308",
}


def _normalize_type(entity_type: str) -> str:
    normalized = re.sub(r"[^a-z0-9]", "", entity_type.lower())
    if normalized.endswith("ies"):
        return normalized[:-3] + "y"
    if normalized == "people":
        return "person"
    return normalized.rstrip("s")


def color_for_type(entity_type: str, palette: Optional[Dict[str, str]] = None) -> str:
    """
    Resolves the display colour of an entity type: exact match, then a match that
    ignores case, punctuation and plurals, then a colour derived from the type name
    so the same unknown type always gets the same colour.
    """
    palette = palette or BASE_COLORS
    if entity_type in palette:
        return palette[entity_type]

    normalized = _normalize_type(entity_type)
    for key, color in palette.items():
        if _normalize_type(key) == normalized:
            return color

    digest = hashlib.md5(entity_type.encode("utf-8")).hexdigest()
    return f"#{digest[:6]}"
