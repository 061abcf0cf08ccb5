"""Economic-engine archetype profiles used to parameterize synthesis prompts."""

from __future__ import annotations

from dataclasses import dataclass

from valuemap.models.schemas import DEFAULT_ARCHETYPE, Archetype, Category


@dataclass(frozen=True)
class ArchetypeProfile:
    label: str
    description: str
    structural_hint: tuple[Category, ...]
    focus: str
    example_actors: tuple[str, ...]
    typical_pain_points: tuple[str, ...]
    edge_flow_hint: str


ARCHETYPE_PROFILES: dict[Archetype, ArchetypeProfile] = {
    "asset-manufacturing": ArchetypeProfile(
        label="Asset Manufacturing",
        description="Converts raw materials into finished goods through capital-intensive production.",
        structural_hint=("capital", "inputs", "production", "processing", "distribution", "customer"),
        focus=(
            "raw material sourcing, transformation and assembly, quality control, warehousing, "
            "distribution to the end customer. Cover capital equipment, suppliers, QA and packaging, "
            "logistics, safety and environmental compliance, and plant infrastructure (MES, ERP, PLCs)."
        ),
        example_actors=("Toyota", "Caterpillar", "Foxconn", "BASF"),
        typical_pain_points=(
            "Supply chain disruption",
            "Yield and scrap loss",
            "Capital expenditure intensity",
            "Tariff and trade barriers",
        ),
        edge_flow_hint=(
            "Materials flow from inputs through production, processing and distribution to the customer. "
            "Capital and compliance connect vertically."
        ),
    ),
    "asset-aggregation": ArchetypeProfile(
        label="Asset Aggregation",
        description="Pools assets or deposits to earn returns through spread, allocation, or portfolio management.",
        structural_hint=("capital", "inputs", "processing", "distribution", "customer", "compliance"),
        focus=(
            "capital sourcing (deposits, premiums, LP commitments), underwriting and risk, portfolio "
            "allocation, settlements and claims, advisory and distribution channels, prudential and "
            "fiduciary compliance, and core banking or data infrastructure."
        ),
        example_actors=("JPMorgan", "BlackRock", "Allianz", "Vanguard"),
        typical_pain_points=(
            "Credit and counterparty risk",
            "Liquidity mismatch",
            "Regulatory capital requirements",
            "Fee compression",
        ),
        edge_flow_hint=(
            "Capital flows inward from sources, through risk and processing, then outward through "
            "allocation and returns. Compliance overlays every stage."
        ),
    ),
    "labor-leverage-service": ArchetypeProfile(
        label="Labor-Leverage Service",
        description="Monetizes human expertise and time through billable engagements or retainers.",
        structural_hint=("inputs", "production", "distribution", "customer", "infrastructure"),
        focus=(
            "talent acquisition and credentials, engagement scoping, service delivery, quality and peer "
            "review, business development, client segments, licensing and privacy compliance, and "
            "practice-management infrastructure."
        ),
        example_actors=("McKinsey", "Deloitte", "Mayo Clinic", "Heidrick & Struggles"),
        typical_pain_points=(
            "Talent retention and burnout",
            "Utilization rate pressure",
            "Scope creep",
            "Scalability limited by headcount",
        ),
        edge_flow_hint=(
            "Talent flows into delivery teams and services flow out to clients. Business development "
            "feeds the pipeline. Infrastructure supports every node."
        ),
    ),
    "marketplace-coordination": ArchetypeProfile(
        label="Marketplace / Coordination Platform",
        description="Connects supply and demand, earning transaction fees, commissions, or listing charges.",
        structural_hint=("inputs", "production", "processing", "distribution", "customer", "infrastructure"),
        focus=(
            "supply onboarding, matching and discovery, payments and escrow, fulfillment, demand-side "
            "acquisition and retention, trust and safety, consumer-protection and tax compliance, and "
            "platform engineering."
        ),
        example_actors=("Amazon Marketplace", "Uber", "Airbnb", "Upwork"),
        typical_pain_points=(
            "Chicken-and-egg supply and demand",
            "Disintermediation",
            "Trust and safety at scale",
            "Take-rate pressure",
        ),
        edge_flow_hint=(
            "Supply and demand converge at the matching and transaction layer. Fulfillment flows from "
            "supply to demand. Infrastructure underpins the platform."
        ),
    ),
    "saas-automation": ArchetypeProfile(
        label="SaaS / Automation",
        description="Delivers subscription software that automates business functions.",
        structural_hint=("inputs", "production", "distribution", "customer", "infrastructure"),
        focus=(
            "product and engineering, data and ML, go-to-market, onboarding and customer success, "
            "customer segments from SMB to enterprise, SOC2 and GDPR compliance, venture capital, and "
            "cloud, security and observability infrastructure."
        ),
        example_actors=("Salesforce", "Snowflake", "HubSpot", "Notion"),
        typical_pain_points=(
            "Customer churn",
            "CAC payback period",
            "Feature bloat",
            "Compliance certification costs",
        ),
        edge_flow_hint=(
            "Product flows from R&D through the platform to customers. Revenue cycles back through "
            "customer success to fund R&D. Infrastructure supports all layers."
        ),
    ),
    "infrastructure-utility": ArchetypeProfile(
        label="Infrastructure / Utility",
        description="Provides shared infrastructure (energy, telecom, water, transport) with regulated or usage pricing.",
        structural_hint=(
            "capital", "inputs", "production", "processing", "distribution", "customer", "compliance",
            "infrastructure",
        ),
        focus=(
            "asset development, resource procurement, generation, transmission, local distribution, "
            "metering and billing, tariff and regulatory compliance, and network operations (SCADA, GIS, "
            "cybersecurity)."
        ),
        example_actors=("Duke Energy", "AT&T", "Thames Water", "Equinix"),
        typical_pain_points=(
            "Capital expenditure intensity",
            "Regulatory rate-setting lag",
            "Aging infrastructure",
            "Demand forecasting accuracy",
        ),
        edge_flow_hint=(
            "Resources flow from procurement through generation, transmission and distribution to "
            "consumers. Capital and compliance touch every stage. Metering feeds data back."
        ),
    ),
    "licensing-ip": ArchetypeProfile(
        label="Licensing / IP Monetization",
        description="Creates and licenses intellectual property for royalty income.",
        structural_hint=("capital", "inputs", "production", "distribution", "customer", "compliance"),
        focus=(
            "R&D and content creation, patents, copyrights and trademarks, licensing and partnerships, "
            "commercialization channels, audiences, IP law and approval regimes, and rights-management "
            "infrastructure."
        ),
        example_actors=("Pfizer", "Walt Disney", "Qualcomm", "McDonald's"),
        typical_pain_points=(
            "IP theft and piracy",
            "Long R&D or approval cycles",
            "Patent cliffs",
            "Licensing contract complexity",
        ),
        edge_flow_hint=(
            "IP flows from creation through protection to licensing and commercialization. Royalties "
            "flow back to fund R&D. Compliance gates each stage."
        ),
    ),
    "brokerage-intermediation": ArchetypeProfile(
        label="Brokerage / Intermediation",
        description="Facilitates transactions without taking principal risk, earning commissions or spreads.",
        structural_hint=("inputs", "processing", "distribution", "customer", "compliance", "infrastructure"),
        focus=(
            "client acquisition, needs analysis and advisory, counterparty sourcing, execution and "
            "negotiation, settlement and documentation, client segments, licensing, fiduciary and AML "
            "compliance, and listing or trading platforms."
        ),
        example_actors=("CBRE", "Marsh McLennan", "Charles Schwab"),
        typical_pain_points=(
            "Disintermediation by direct channels",
            "Commission compression",
            "Licensing requirements",
            "Market transparency enabling bypass",
        ),
        edge_flow_hint=(
            "Clients reach products and counterparties through the broker. Information flows both ways. "
            "Settlement follows execution."
        ),
    ),
    "asset-ownership-leasing": ArchetypeProfile(
        label="Asset Ownership / Leasing",
        description="Owns high-value assets and monetizes them through leases, rentals, or usage fees.",
        structural_hint=("capital", "inputs", "production", "distribution", "customer", "compliance"),
        focus=(
            "acquisitions and capital, asset management and maintenance, lessee sourcing and screening, "
            "lease structuring, operations, customer segments, building and lease-law compliance, and "
            "property-management infrastructure."
        ),
        example_actors=("Prologis", "GATX", "WeWork", "United Rentals"),
        typical_pain_points=(
            "Vacancy risk",
            "Maintenance and depreciation",
            "Interest rate sensitivity",
            "Tenant default",
        ),
        edge_flow_hint=(
            "Capital flows into acquisitions. Assets flow through management to lessees. Lease revenue "
            "flows back. Compliance overlays operations."
        ),
    ),
}


def get_archetype_profile(archetype: Archetype | None) -> ArchetypeProfile:
    """Profile for the archetype, or the default archetype's profile."""
    return ARCHETYPE_PROFILES.get(archetype or DEFAULT_ARCHETYPE, ARCHETYPE_PROFILES[DEFAULT_ARCHETYPE])
