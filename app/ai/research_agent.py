"""
Deep-research oracle backed by a CrewAI agent with web search.

Implements the same generate_structured(prompt, schema) contract as
OpenRouterOracle so the research cache does not care which one it gets. The
agent searches official sources first and then emits the requested schema;
the result is re-validated here before it is returned.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TypeVar

from crewai import Agent, Task, Crew, Process, LLM
from pydantic import BaseModel

from app.ai.oracle import extract_json, validate_output
from app.ai.web_search_tool import web_search_visa
from app.errors import OracleError

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class CrewResearchOracle:
    def __init__(self, api_key: str | None, model: str, base_url: str = "https://openrouter.ai/api/v1"):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url

    def _kickoff(self, prompt: str, schema: type[SchemaT], system: str | None, temperature: float) -> SchemaT:
        if not self.api_key:
            raise OracleError("OPENROUTER_API_KEY is not configured")

        # litellm routes on the provider prefix
        llm = LLM(model=f"openrouter/{self.model}", api_key=self.api_key, base_url=self.base_url, temperature=temperature)

        agent = Agent(
            role="Visa Research Analyst",
            goal=(
                "Produce current, verified information about one visa: requirements, fees, "
                "processing times, eligibility criteria, application steps, recent changes "
                "and official sources."
            ),
            backstory=system or (
                "You are a professional immigration researcher. You always search official "
                "government sources before answering, you cite real URLs only, and you lower "
                "your confidence score whenever data could not be confirmed."
            ),
            tools=[web_search_visa],
            llm=llm,
            verbose=False,
        )

        task = Task(
            description=prompt,
            expected_output=f"A JSON object matching the {schema.__name__} schema.",
            agent=agent,
            output_pydantic=schema,
        )

        crew = Crew(process=Process.sequential, agents=[agent], tasks=[task])
        result = crew.kickoff()

        parsed = getattr(result, "pydantic", None)
        if parsed is not None:
            return validate_output(schema, parsed.model_dump())
        raw = result.raw if hasattr(result, "raw") else str(result)
        return validate_output(schema, extract_json(raw))

    async def generate_structured(
        self,
        prompt: str,
        schema: type[SchemaT],
        *,
        system: str | None = None,
        temperature: float | None = None,
    ) -> SchemaT:
        logger.info("Research agent call: schema=%s model=%s", schema.__name__, self.model)
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(
                None,
                lambda: self._kickoff(prompt, schema, system, 0.0 if temperature is None else temperature),
            )
        except OracleError:
            raise
        except Exception as e:
            # crewai/litellm raise provider-specific exception types
            logger.warning("Research agent failed: %s", e)
            raise OracleError(f"Research agent failed: {e.__class__.__name__}")
