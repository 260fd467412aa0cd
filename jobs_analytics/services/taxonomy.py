"""Keyword taxonomy used by the classification engine.

The taxonomy is an ordered, immutable value: the position of a category in
``DEFAULT_TAXONOMY.categories`` is the tie-break order when two categories
score the same.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class Category:
    id: str
    name: str
    description: str
    core_keywords: tuple[str, ...]
    support_keywords: tuple[str, ...]
    context_pairs: tuple[tuple[str, str], ...]
    core_patterns: tuple[re.Pattern[str], ...] = field(init=False, repr=False, compare=False)
    support_patterns: tuple[re.Pattern[str], ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "core_patterns", tuple(_keyword_pattern(item) for item in self.core_keywords))
        object.__setattr__(self, "support_patterns", tuple(_keyword_pattern(item) for item in self.support_keywords))


@dataclass(frozen=True, slots=True)
class Taxonomy:
    categories: tuple[Category, ...]
    fallback_category: str = "operations-administration"
    known_words: frozenset[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        words: set[str] = set()
        for category in self.categories:
            for keyword in (*category.core_keywords, *category.support_keywords):
                words.update(keyword.lower().split())
        object.__setattr__(self, "known_words", frozenset(words))

    def get(self, category_id: str) -> Category | None:
        for category in self.categories:
            if category.id == category_id:
                return category
        return None

    def ids(self) -> list[str]:
        return [category.id for category in self.categories]


def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    return re.compile(rf"\b{re.escape(keyword.lower())}\b", re.IGNORECASE)


LEADERSHIP_CATEGORY = "leadership-executive"

LEADERSHIP_TITLE_INDICATORS: tuple[str, ...] = (
    "resident coordinator",
    "country director",
    "regional director",
    "deputy director general",
    "assistant director general",
    "director general",
    "assistant secretary-general",
    "under-secretary-general",
    "secretary-general",
    "executive secretary",
    "administrator",
    "high commissioner",
    "special representative",
    "deputy special representative",
)

STOP_WORDS = frozenset(
    {
        "the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
        "is", "are", "was", "were", "be", "been", "being", "have", "has", "had", "do",
        "does", "did", "will", "would", "could", "should", "may", "might", "must",
        "can", "this", "that", "these", "those", "a", "an", "as", "if", "when",
        "where", "why", "how", "what", "who", "which", "than", "so", "very", "just",
    }
)


DEFAULT_TAXONOMY = Taxonomy(
    categories=(
        Category(
            id="leadership-executive",
            name="Leadership & Executive Management",
            description="Senior leadership positions including Resident Coordinators, Country Directors and Chiefs of Mission",
            core_keywords=(
                "director", "coordinator", "representative", "chief", "deputy", "head", "executive",
                "resident coordinator", "country director", "deputy director", "chief of mission",
                "senior management", "executive management", "leadership", "strategic leadership",
                "D1", "D2", "ASG", "USG", "executive level", "senior executive",
            ),
            support_keywords=(
                "management", "oversight", "governance", "strategic direction", "leadership team",
                "senior position", "executive role", "country management", "field management",
                "regional director", "global leadership", "organizational leadership",
                "executive coordination", "senior coordinator", "chief officer",
            ),
            context_pairs=(
                ("resident", "coordinator"), ("country", "director"), ("chief", "mission"),
                ("deputy", "director"), ("senior", "management"), ("executive", "leadership"),
                ("strategic", "leadership"), ("field", "management"),
            ),
        ),
        Category(
            id="digital-technology",
            name="Digital & Technology",
            description="IT, software development, data science, cybersecurity, digital transformation",
            core_keywords=(
                "software", "programmer", "developer", "software engineer", "data scientist",
                "IT specialist", "digital transformation", "cybersecurity", "machine learning",
                "AI", "artificial intelligence", "blockchain", "programming", "coding",
                "cloud computing", "big data analytics", "automation engineer",
            ),
            support_keywords=(
                "innovation", "platform", "system", "database", "web", "mobile", "app",
                "technical", "coding", "algorithm", "API", "integration", "infrastructure",
                "DevOps", "agile", "scrum", "user experience", "UX", "UI", "digital literacy",
                "e-governance", "smart city", "IoT", "internet of things",
            ),
            context_pairs=(
                ("data", "analysis"), ("digital", "transformation"), ("IT", "systems"),
                ("software", "development"), ("cyber", "security"), ("machine", "learning"),
                ("artificial", "intelligence"), ("cloud", "computing"), ("big", "data"),
            ),
        ),
        Category(
            id="climate-environment",
            name="Climate & Environment",
            description="Climate change, environmental protection, sustainability, renewable energy, conservation",
            core_keywords=(
                "climate", "environment", "sustainability", "green", "carbon", "renewable",
                "biodiversity", "ecosystem", "conservation", "climate change", "environmental",
                "clean energy", "emissions", "mitigation", "adaptation", "forest",
                "ocean", "marine", "wildlife", "natural resources",
            ),
            support_keywords=(
                "ecological", "waste management", "pollution", "deforestation", "restoration",
                "sustainable development", "green technology", "solar", "wind", "hydroelectric",
                "carbon footprint", "greenhouse gas", "Paris agreement", "UNFCCC", "SDG",
                "circular economy", "nature-based solutions", "ecosystem services",
            ),
            context_pairs=(
                ("climate", "change"), ("renewable", "energy"), ("carbon", "emissions"),
                ("biodiversity", "conservation"), ("green", "technology"), ("sustainable", "development"),
                ("environmental", "protection"), ("clean", "energy"),
            ),
        ),
        Category(
            id="health-medical",
            name="Health & Medical",
            description="Public health, medical services, epidemiology, health systems, nutrition",
            core_keywords=(
                "health", "medical", "healthcare", "clinical", "epidemiology", "disease",
                "vaccine", "pharmacy", "nutrition", "public health", "WHO", "health system",
                "maternal health", "child health", "mental health", "global health",
                "health policy", "health security", "pandemic", "outbreak", "epidemiologist",
                "world health organization", "health product access", "health programs",
            ),
            support_keywords=(
                "hospital", "patient", "treatment", "diagnosis", "prevention", "immunization",
                "health promotion", "primary healthcare", "universal health coverage",
                "health equity", "health research", "medical research", "clinical trial",
                "health data", "health information", "telemedicine", "digital health",
            ),
            context_pairs=(
                ("public", "health"), ("maternal", "health"), ("mental", "health"),
                ("disease", "prevention"), ("health", "systems"), ("global", "health"),
                ("health", "policy"), ("universal", "coverage"),
            ),
        ),
        Category(
            id="agriculture-food-security",
            name="Agriculture & Food Security",
            description="Agricultural development, food systems, rural development, livestock, fisheries",
            core_keywords=(
                "agriculture", "food security", "farming", "rural development", "livestock",
                "fisheries", "food systems", "agricultural development", "FAO", "IFAD",
                "WFP", "rural", "crops", "agribusiness", "aquaculture", "food production",
                "agricultural economics", "land management", "irrigation", "soil", "seeds",
            ),
            support_keywords=(
                "food policy", "nutrition security", "smallholder farmers", "value chains",
                "agricultural extension", "farm management", "crop production", "animal husbandry",
                "sustainable agriculture", "organic farming", "precision agriculture",
                "food safety", "post-harvest", "agricultural research", "agtech",
            ),
            context_pairs=(
                ("food", "security"), ("rural", "development"), ("agricultural", "development"),
                ("food", "systems"), ("value", "chains"), ("smallholder", "farmers"),
                ("food", "production"), ("agricultural", "economics"),
            ),
        ),
        Category(
            id="education-development",
            name="Education & Development",
            description="Education, training, capacity building, youth development, skills development",
            core_keywords=(
                "education", "training", "learning", "capacity building", "curriculum",
                "teaching", "academic", "scholarship", "skill development", "knowledge management",
                "educational", "school", "university", "literacy", "numeracy", "youth",
                "technical education", "vocational training", "adult education", "youth development",
            ),
            support_keywords=(
                "pedagogy", "educational technology", "e-learning", "distance learning",
                "quality education", "inclusive education", "educational planning",
                "teacher training", "educational assessment", "learning outcomes",
                "educational policy", "higher education", "early childhood education",
            ),
            context_pairs=(
                ("capacity", "building"), ("skill", "development"), ("quality", "education"),
                ("teacher", "training"), ("educational", "policy"), ("technical", "education"),
                ("adult", "education"), ("distance", "learning"), ("youth", "development"),
            ),
        ),
        Category(
            id="social-affairs-human-rights",
            name="Social Affairs & Human Rights",
            description="Human rights, gender equality, social inclusion, child protection, social development",
            core_keywords=(
                "human rights", "gender", "women", "equality", "inclusion", "diversity",
                "disability", "social protection", "empowerment", "child protection",
                "marginalized", "vulnerable", "gender equality", "women empowerment",
                "social inclusion", "inclusive", "equity", "discrimination", "social development",
            ),
            support_keywords=(
                "gender mainstreaming", "women leadership", "girls education",
                "gender-based violence", "social cohesion", "minority rights",
                "indigenous peoples", "LGBTI", "accessibility", "social justice",
                "human dignity", "cultural diversity", "social affairs",
            ),
            context_pairs=(
                ("human", "rights"), ("gender", "equality"), ("women", "empowerment"),
                ("social", "inclusion"), ("gender", "mainstreaming"), ("vulnerable", "groups"),
                ("social", "protection"), ("inclusive", "development"), ("child", "protection"),
            ),
        ),
        Category(
            id="peace-security",
            name="Peace & Security",
            description="Peacekeeping, political affairs, disarmament, security sector reform, conflict prevention",
            core_keywords=(
                "peace", "security", "peacekeeping", "peacebuilding", "political affairs",
                "political analysis", "political officer", "political advisor", "conflict prevention",
                "mediation", "conflict resolution", "peace operations", "security council",
                "disarmament", "stabilization", "ceasefire", "DDR", "security sector reform",
                "political reporting", "political coordination", "political research", "military",
                "police", "uniformed personnel",
            ),
            support_keywords=(
                "conflict analysis", "peace processes", "political dialogue", "reconciliation",
                "transitional justice", "election monitoring", "political transition",
                "security assessment", "peace agreement", "political settlement",
                "diplomatic engagement", "political mapping", "stakeholder analysis",
                "political strategy", "peace dividend", "political economy",
            ),
            context_pairs=(
                ("political", "affairs"), ("peace", "operations"), ("conflict", "prevention"),
                ("security", "council"), ("peace", "building"), ("political", "analysis"),
                ("conflict", "resolution"), ("peace", "process"), ("security", "sector"),
            ),
        ),
        Category(
            id="humanitarian-emergency",
            name="Humanitarian & Emergency",
            description="Emergency response, humanitarian coordination, refugee assistance, disaster response",
            core_keywords=(
                "humanitarian", "emergency", "crisis", "disaster", "response", "relief",
                "refugee", "UNHCR", "recovery", "resilience", "humanitarian aid",
                "disaster risk reduction", "emergency preparedness", "humanitarian coordination",
                "humanitarian assistance", "displacement", "migration",
            ),
            support_keywords=(
                "emergency response", "disaster management", "risk reduction", "early warning",
                "contingency planning", "protection", "food security", "shelter", "WASH",
                "logistics", "humanitarian access", "camp management", "humanitarian principles",
                "humanitarian financing",
            ),
            context_pairs=(
                ("humanitarian", "assistance"), ("emergency", "response"), ("disaster", "relief"),
                ("humanitarian", "coordination"), ("risk", "reduction"), ("emergency", "preparedness"),
                ("humanitarian", "aid"), ("disaster", "management"),
            ),
        ),
        Category(
            id="governance-rule-of-law",
            name="Governance & Rule of Law",
            description="Democratic governance, justice, rule of law, elections, public administration",
            core_keywords=(
                "governance", "rule of law", "justice", "elections", "democracy",
                "democratic governance", "public administration", "institutional",
                "anti-corruption", "transparency", "accountability", "public sector",
                "institutional development", "public management", "regulatory", "legislative",
                "electoral", "judicial", "courts", "justice sector",
            ),
            support_keywords=(
                "public policy", "governance reform", "institutional capacity",
                "public service", "civil service", "decentralization", "local governance",
                "participatory governance", "e-governance", "regulatory framework",
                "institutional strengthening", "good governance", "government relations",
                "electoral assistance", "justice reform",
            ),
            context_pairs=(
                ("rule", "law"), ("democratic", "governance"), ("public", "administration"),
                ("good", "governance"), ("institutional", "strengthening"), ("governance", "reform"),
                ("public", "sector"), ("justice", "sector"), ("electoral", "assistance"),
            ),
        ),
        Category(
            id="economic-affairs-trade",
            name="Economic Affairs & Trade",
            description="Economic development, trade, finance, private sector, market development",
            core_keywords=(
                "economic", "development", "finance", "investment", "trade", "private sector",
                "entrepreneurship", "market", "financial inclusion", "poverty reduction",
                "economic growth", "microfinance", "banking", "financial services",
                "economic policy", "fiscal", "monetary", "employment", "job creation",
                "trade facilitation", "market development", "investment promotion",
            ),
            support_keywords=(
                "sustainable development", "inclusive growth", "value chain", "business development",
                "financial literacy", "access to finance", "economic empowerment",
                "livelihood", "income generation", "economic analysis", "macroeconomic",
                "SME development", "public-private partnership", "economic research",
                "trade policy", "commercial development",
            ),
            context_pairs=(
                ("economic", "development"), ("private", "sector"), ("financial", "inclusion"),
                ("poverty", "reduction"), ("economic", "growth"), ("job", "creation"),
                ("market", "development"), ("trade", "facilitation"), ("investment", "promotion"),
            ),
        ),
        Category(
            id="policy-strategic-planning",
            name="Policy & Strategic Planning",
            description="Policy development, strategic planning, research, analysis, coordination",
            core_keywords=(
                "policy", "strategy", "planning", "analysis", "coordination", "strategic planning",
                "policy development", "policy analysis", "strategic analysis", "research",
                "policy research", "strategic coordination", "planning officer", "policy officer",
                "strategy officer", "programme planning", "strategic management",
            ),
            support_keywords=(
                "policy coordination", "strategic direction", "policy implementation",
                "strategic initiatives", "policy review", "strategic assessment",
                "planning coordination", "policy advisory", "strategic advisory",
                "results-based management", "monitoring and evaluation", "strategic monitoring",
            ),
            context_pairs=(
                ("policy", "development"), ("strategic", "planning"), ("policy", "analysis"),
                ("strategic", "analysis"), ("policy", "coordination"), ("strategic", "coordination"),
                ("policy", "research"), ("strategic", "management"),
            ),
        ),
        Category(
            id="communications-partnerships",
            name="Communications & Partnerships",
            description="Public information, media, advocacy, partnerships, resource mobilization",
            core_keywords=(
                "communication", "communications", "advocacy", "media", "public information", "outreach",
                "awareness", "campaign", "social media", "journalism", "partnership",
                "public relations", "stakeholder engagement", "knowledge sharing",
                "information management", "content creation", "partnerships", "donor relations",
                "resource mobilization", "partnership development",
            ),
            support_keywords=(
                "strategic communication", "behavior change", "social mobilization",
                "community engagement", "multimedia", "digital communication",
                "advocacy strategy", "messaging", "storytelling", "brand management",
                "external relations", "fundraising", "visibility",
            ),
            context_pairs=(
                ("strategic", "communication"), ("public", "information"), ("social", "media"),
                ("stakeholder", "engagement"), ("advocacy", "campaign"), ("behavior", "change"),
                ("community", "engagement"), ("knowledge", "sharing"), ("partnership", "development"),
            ),
        ),
        Category(
            id="operations-administration",
            name="Operations & Administration",
            description="HR, finance, procurement, general administration, facilities, travel",
            core_keywords=(
                "administrative", "administration", "administrative support", "staff assistant",
                "office management", "HR", "human resources", "finance", "procurement",
                "facilities", "travel", "support", "operational", "budget management",
                "financial analysis", "budget", "financial management", "treasury",
                "accounting", "financial planning", "budget planning", "financial reporting",
                "driver", "vehicle management", "fleet maintenance", "transport services",
            ),
            support_keywords=(
                "project management", "resource management", "vendor management",
                "contract management", "quality assurance", "compliance",
                "business continuity", "risk management", "asset management",
                "facility management", "event management", "budget monitoring",
                "expenditure monitoring", "financial control", "cost management",
                "budget administration", "financial operations", "cash management",
            ),
            context_pairs=(
                ("human", "resources"), ("project", "management"), ("budget", "management"),
                ("operations", "management"), ("facility", "management"), ("resource", "management"),
                ("administrative", "support"), ("financial", "management"),
            ),
        ),
        Category(
            id="supply-chain-logistics",
            name="Supply Chain & Logistics",
            description="Logistics, supply chain, warehouse, fleet management, distribution",
            core_keywords=(
                "logistics", "supply chain", "supply", "warehouse", "distribution",
                "fleet management", "transport", "shipping", "freight", "customs",
                "inventory", "procurement logistics", "supply planning", "logistics coordination",
                "supply operations", "logistics management", "supply management",
            ),
            support_keywords=(
                "vendor management", "supplier relations", "inventory management",
                "distribution management", "transportation management", "warehousing",
                "logistics planning", "supply planning", "demand planning",
                "cold chain", "humanitarian logistics", "field logistics",
            ),
            context_pairs=(
                ("supply", "chain"), ("supply", "management"), ("logistics", "coordination"),
                ("fleet", "management"), ("distribution", "management"), ("inventory", "management"),
                ("logistics", "planning"), ("supply", "planning"),
            ),
        ),
        Category(
            id="translation-interpretation",
            name="Translation & Interpretation",
            description="Language services, translation, interpretation, localization and linguistic support",
            core_keywords=(
                "translator", "interpreter", "translation", "interpretation", "linguistic", "language",
                "bilingual", "multilingual", "localization", "linguist", "language specialist",
                "consecutive interpretation", "simultaneous interpretation", "sign language",
                "language services", "translation services", "interpreter services",
                "field interpreter", "arabic-english", "english-arabic",
            ),
            support_keywords=(
                "language skills", "fluency", "native speaker", "language proficiency",
                "cultural adaptation", "terminology", "glossary", "translation memory",
                "cultural mediation", "language coordination", "translation quality",
                "linguistic review", "proofreading", "editing", "subtitling",
                "voice-over", "transcription", "language training", "conference interpretation",
            ),
            context_pairs=(
                ("language", "services"), ("translation", "interpretation"), ("linguistic", "support"),
                ("language", "specialist"), ("cultural", "adaptation"), ("language", "coordination"),
                ("consecutive", "interpretation"), ("simultaneous", "interpretation"),
                ("field", "interpreter"), ("arabic", "english"),
            ),
        ),
    )
)
