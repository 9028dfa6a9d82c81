"""
Suggestion Agents - tax category (HSN/SAC) and sales strategy suggestions

Suggestions are best-effort: a disabled or failing provider never blocks
invoice creation. FallbackSuggestionProvider degrades to the default
"unknown / 18%" suggestion with confidence 0.
"""

from abc import ABC, abstractmethod
from typing import Optional

from langchain_core.prompts import ChatPromptTemplate

from models.errors import CollaboratorUnavailable
from models.suggestion import (
    DEFAULT_TAX_RATE,
    SalesStrategyOutput,
    SalesSuggestions,
    TaxCategoryOutput,
    TaxSuggestion,
)
from utils.data_loaders import HSNRateSchedule
from utils.llm_factory import GPT4O_MINI, get_llm
from utils.logging import logger


DEFAULT_SALES_SUGGESTIONS = [
    "AI-powered sales suggestions are currently unavailable.",
    "Review your top customers from recent invoices and follow up on repeat orders.",
    "Chase overdue invoices before offering new credit terms.",
]


class SuggestionProvider(ABC):
    """Capability interface for suggestion collaborators"""

    name = "provider"

    @abstractmethod
    async def suggest_tax_category(self, description: str) -> TaxSuggestion:
        ...

    @abstractmethod
    async def suggest_sales_strategies(self, business_context: Optional[str] = None) -> SalesSuggestions:
        ...


class DefaultSuggestionProvider(SuggestionProvider):
    """Used when AI features are disabled or a provider fails"""

    name = "default"

    def __init__(self, reason: str = "AI features are currently disabled"):
        self.reason = reason

    async def suggest_tax_category(self, description: str) -> TaxSuggestion:
        return TaxSuggestion(rate=DEFAULT_TAX_RATE, confidence=0.0, rationale=self.reason, source=self.name)

    async def suggest_sales_strategies(self, business_context: Optional[str] = None) -> SalesSuggestions:
        return SalesSuggestions(suggestions=list(DEFAULT_SALES_SUGGESTIONS), source=self.name)


class HSNLookupProvider(SuggestionProvider):
    """
    Offline tax category lookup against an HSN/SAC schedule CSV

    Fuzzy-matches the item description; matches below `min_score` are treated
    as unavailable so the caller falls back.
    """

    name = "hsn_lookup"

    def __init__(self, schedule: HSNRateSchedule, min_score: float = 60):
        self.schedule = schedule
        self.min_score = min_score

    async def suggest_tax_category(self, description: str) -> TaxSuggestion:
        matches = self.schedule.search(description, limit=1)
        if not matches or matches[0]["score"] < self.min_score:
            raise CollaboratorUnavailable(self.name, f"no confident HSN/SAC match for '{description}'")

        best = matches[0]
        return TaxSuggestion(
            suggestion=best["hsn_code"],
            rate=best["rate"],
            confidence=round(best["score"] / 100, 2),
            rationale=f"Closest schedule entry: {best['description']}",
            source=self.name,
        )

    async def suggest_sales_strategies(self, business_context: Optional[str] = None) -> SalesSuggestions:
        raise CollaboratorUnavailable(self.name, "sales strategies need an AI model")


class LLMSuggestionAgent(SuggestionProvider):
    """
    LLM-powered suggestions

    Uses a LangChain chat model with structured output for both the tax
    category and the sales strategy prompts.
    """

    name = "llm"

    def __init__(self, llm=None, model_name: str = GPT4O_MINI, temperature: float = 0, timeout: float = 20):
        self.llm = llm or get_llm(model=model_name, temperature=temperature, timeout=timeout)

        self.tax_prompt = ChatPromptTemplate.from_messages([
            ("system", """You are an AI assistant specialized in Indian GST classification.

Given an invoice item description, suggest the most appropriate tax category:
an HSN code for goods or a SAC code for services, the GST rate that applies
to it, and a confidence score between 0 and 1.

Be conservative with confidence when the description is ambiguous."""),
            ("human", "Item Description: {description}")
        ])

        self.sales_prompt = ChatPromptTemplate.from_messages([
            ("system", """You are an expert sales strategist for small and medium-sized businesses.

Provide 3-5 concrete, actionable suggestions to increase sales. Briefly explain
the expected impact of each. Consider customer engagement, pricing and offers,
marketing, customer feedback, loyalty programs and new sales channels."""),
            ("human", "{context}")
        ])

    async def suggest_tax_category(self, description: str) -> TaxSuggestion:
        chain = self.tax_prompt | self.llm.with_structured_output(TaxCategoryOutput)
        output = await chain.ainvoke({"description": description})
        if output is None:
            raise CollaboratorUnavailable(self.name, "model returned no tax category")

        return TaxSuggestion(
            suggestion=output.hsn_sac,
            rate=output.gst_rate,
            confidence=min(max(output.confidence, 0.0), 1.0),
            rationale=output.rationale,
            source=self.name,
        )

    async def suggest_sales_strategies(self, business_context: Optional[str] = None) -> SalesSuggestions:
        if business_context:
            context = f"Business Context: {business_context}"
        else:
            context = ("No specific context was provided. Give general strategies "
                       "that apply to most small businesses.")

        chain = self.sales_prompt | self.llm.with_structured_output(SalesStrategyOutput)
        output = await chain.ainvoke({"context": context})
        if output is None or not output.suggestions:
            raise CollaboratorUnavailable(self.name, "model returned no sales suggestions")

        return SalesSuggestions(suggestions=output.suggestions, source=self.name)


class FallbackSuggestionProvider(SuggestionProvider):
    """Tries each provider in order, then the default; never raises"""

    name = "fallback"

    def __init__(self, *providers: SuggestionProvider, default: Optional[DefaultSuggestionProvider] = None):
        self.providers = list(providers)
        self.default = default or DefaultSuggestionProvider()

    async def suggest_tax_category(self, description: str) -> TaxSuggestion:
        for provider in self.providers:
            try:
                return await provider.suggest_tax_category(description)
            except Exception as e:
                self._log_failure(provider, "tax_category", e)
        return await self.default.suggest_tax_category(description)

    async def suggest_sales_strategies(self, business_context: Optional[str] = None) -> SalesSuggestions:
        for provider in self.providers:
            try:
                return await provider.suggest_sales_strategies(business_context)
            except Exception as e:
                self._log_failure(provider, "sales_strategies", e)
        return await self.default.suggest_sales_strategies(business_context)

    @staticmethod
    def _log_failure(provider: SuggestionProvider, kind: str, error: Exception):
        logger.log_warning("suggestion_provider_unavailable", {
            "provider": provider.name,
            "kind": kind,
            "error": str(error),
        })


def build_suggestion_provider(ai_config: dict = None) -> FallbackSuggestionProvider:
    """
    Assemble the provider chain from the `ai` config section

    LLM first (when enabled and a key is configured), then the HSN schedule
    lookup (when a CSV is configured), then the default.
    """

    ai_config = ai_config or {}
    providers = []

    if ai_config.get('enabled'):
        try:
            providers.append(LLMSuggestionAgent(
                model_name=ai_config.get('model', GPT4O_MINI),
                temperature=ai_config.get('temperature', 0),
                timeout=ai_config.get('timeout', 20),
            ))
        except CollaboratorUnavailable as e:
            logger.log_warning("llm_suggestions_disabled", {"reason": str(e)})

    hsn_path = ai_config.get('hsn_rates_path')
    if hsn_path:
        try:
            providers.append(HSNLookupProvider(
                HSNRateSchedule(hsn_path),
                min_score=ai_config.get('min_lookup_score', 60),
            ))
        except (OSError, ValueError) as e:
            logger.log_warning("hsn_lookup_disabled", {"path": hsn_path, "reason": str(e)})

    return FallbackSuggestionProvider(*providers)
