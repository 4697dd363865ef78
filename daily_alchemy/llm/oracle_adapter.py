"""
Oracle adapter.

Wraps whichever LLM client is configured behind one retry/timeout policy so
callers only ever see a validated answer or ``OracleUnavailable``:

- every call is bounded by ``RetryPolicy.timeout_seconds``; a timeout fails fast
- transport failures are retried ``max_transport_retries`` times with exponential backoff
- answers failing schema validation (or naming a starter element) are retried
  ``max_validation_retries`` times, then surface as ``OracleUnavailable``
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Sequence, TypeVar

from pydantic import ValidationError

from daily_alchemy.core.errors import InvalidName, InvalidOracleResponse, OracleUnavailable
from daily_alchemy.core.normalizer import STARTER_NAMES, is_reserved, normalize_name
from daily_alchemy.llm.errors import OracleTransportError
from daily_alchemy.prompts.prompt_manager import get_combination_prompt, get_path_prompt
from daily_alchemy.schemas import CombinationRecord, Element, OracleCombination, OraclePathsResponse, Step

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    timeout_seconds: float = 20.0
    max_transport_retries: int = 2
    max_validation_retries: int = 1
    backoff_seconds: float = 1.0

    @classmethod
    def from_settings(cls, settings) -> "RetryPolicy":
        return cls(
            timeout_seconds=settings.ORACLE_TIMEOUT_SECONDS,
            max_transport_retries=settings.ORACLE_MAX_RETRIES,
            backoff_seconds=settings.ORACLE_BACKOFF_SECONDS,
        )

    def backoff(self, attempt: int) -> float:
        return self.backoff_seconds * (2 ** attempt)


def _check_result_name(name: str) -> None:
    try:
        normalized = normalize_name(name)
    except InvalidName as e:
        raise InvalidOracleResponse(f"Oracle result name is invalid: {e.message}") from e
    if normalized in STARTER_NAMES:
        raise InvalidOracleResponse(f"Oracle produced starter element '{name}'")
    if is_reserved(name):
        raise InvalidOracleResponse(f"Oracle produced reserved name '{name}'")


class OracleAdapter:
    def __init__(self, client, policy: RetryPolicy = None, sleep=asyncio.sleep):
        self.client = client
        self.policy = policy or RetryPolicy()
        self._sleep = sleep


    async def combine(self, a: Element, b: Element, context: Sequence[CombinationRecord]) -> OracleCombination:
        """ Ask the oracle what a + b makes"""
        prompt = get_combination_prompt(a, b, list(context))
        logger.info("Consulting oracle: %s + %s", a.name, b.name)
        return await self._call(prompt, self._parse_combination)


    async def propose_paths(self, target_name: str, context: Sequence[CombinationRecord], limit: int) -> List[List[Step]]:
        """ Ask the oracle for paths from the starters to target; steps come back provisional"""
        prompt = get_path_prompt(target_name, list(context), limit)
        logger.info("Consulting oracle for bridging paths to %s", target_name)
        return await self._call(prompt, self._parse_paths)


    async def _call(self, prompt: dict, parse: Callable[[str], T]) -> T:
        transport_failures = 0
        validation_failures = 0
        while True:
            try:
                raw = await asyncio.wait_for(self.client.complete_json(prompt), timeout=self.policy.timeout_seconds)
            except asyncio.TimeoutError as e:
                logger.warning("Oracle timed out after %ss", self.policy.timeout_seconds)
                raise OracleUnavailable("Oracle timed out, try again in a moment") from e
            except OracleTransportError as e:
                if not e.retryable or transport_failures >= self.policy.max_transport_retries:
                    logger.warning("Oracle failed permanently: %s", e)
                    raise OracleUnavailable("Oracle unavailable, try again in a moment") from e
                delay = self.policy.backoff(transport_failures)
                transport_failures += 1
                logger.warning("Oracle transport failure (attempt %s), retrying in %ss: %s",
                               transport_failures, delay, e)
                await self._sleep(delay)
                continue

            try:
                return parse(raw)
            except InvalidOracleResponse as e:
                if validation_failures >= self.policy.max_validation_retries:
                    logger.warning("Oracle answer rejected again, giving up: %s", e.message)
                    raise OracleUnavailable("Oracle gave no usable answer, try again in a moment") from e
                validation_failures += 1
                logger.warning("Oracle answer rejected, asking again: %s", e.message)


    def _parse_combination(self, raw: str) -> OracleCombination:
        try:
            answer = OracleCombination.model_validate_json(raw)
        except ValidationError as e:
            raise InvalidOracleResponse(f"Oracle answer does not match schema ({e.error_count()} errors)") from e
        _check_result_name(answer.result_name)
        return answer


    def _parse_paths(self, raw: str) -> List[List[Step]]:
        try:
            answer = OraclePathsResponse.model_validate_json(raw)
        except ValidationError as e:
            raise InvalidOracleResponse(f"Oracle paths do not match schema ({e.error_count()} errors)") from e

        paths = []
        for proposed in answer.paths:
            steps = []
            for step in proposed.steps:
                try:
                    normalize_name(step.a)
                    normalize_name(step.b)
                    _check_result_name(step.result_name)
                except (InvalidName, InvalidOracleResponse) as e:
                    logger.info("Dropping proposed path with unusable step %s + %s: %s", step.a, step.b, e)
                    steps = None
                    break
                if is_reserved(step.a) or is_reserved(step.b):
                    steps = None
                    break
                steps.append(Step(
                    a=step.a.strip(),
                    b=step.b.strip(),
                    result_name=step.result_name.strip(),
                    result_emoji=step.result_emoji.strip(),
                    provisional=True,
                ))
            if steps:
                paths.append(steps)
        return paths
