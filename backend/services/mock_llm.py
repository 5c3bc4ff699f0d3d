"""
Mock LLM for deterministic testing and UX timing simulation.

Streams canned completions in fixed-size chunks with configurable delays.
Used in tests (instant profile) and local development (USE_MOCK_LLM=true).
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

DELAY_PROFILES: dict[str, dict[str, int]] = {
    "instant": {"think_ms": 0, "per_chunk_ms": 0},
    "realistic": {"think_ms": 300, "per_chunk_ms": 40},
    "slow": {"think_ms": 1500, "per_chunk_ms": 200},
}

SCENARIOS: dict[str, str] = {
    "counter": """Here is your counter component:

```jsx
import React, { useState } from 'react';

function App() {
  const [count, setCount] = useState(0);

  return (
    <div className="min-h-screen bg-gray-100 flex items-center justify-center">
      <div className="bg-white p-8 rounded-lg shadow-lg text-center">
        <h1 className="text-2xl font-bold text-gray-800 mb-4">Count: {count}</h1>
        <button
          className="px-4 py-2 bg-blue-500 text-white rounded"
          onClick={() => setCount(count + 1)}
        >
          Increment
        </button>
      </div>
    </div>
  );
}

export default App;
```
""",
    "widget": """```jsx
function Widget() {
  return (
    <span className="inline-block px-3 py-1 rounded-full bg-green-100 text-green-800">
      Widget ready
    </span>
  );
}
```""",
    "bare_return": """```jsx
return (
  <div className="p-6 text-xl font-semibold text-gray-700">Hi from a bare return statement</div>
);
```""",
    "no_return": """```jsx
function App() {
  console.log('rendering the app without returning any markup at all');
}
```""",
    "empty": "",
}

DEFAULT_SCENARIO = "counter"


class MockLLM:
    """Streams canned completions in chunks with configurable delays."""

    def __init__(
        self,
        text: str | None = None,
        scenario: str = DEFAULT_SCENARIO,
        profile: str = "instant",
        chunk_size: int = 16,
        fail_with: BaseException | None = None,
        fail_after: int = 0,
    ):
        """
        Args:
            text: Completion to stream; overrides scenario selection
            scenario: Scenario used when the prompt doesn't name one
            profile: Delay profile ("instant", "realistic", "slow")
            chunk_size: Characters per yielded delta
            fail_with: Exception raised after fail_after chunks
            fail_after: Number of chunks to yield before failing
        """
        if profile not in DELAY_PROFILES:
            raise ValueError(f"Unknown delay profile: {profile!r}. Valid profiles: {list(DELAY_PROFILES)}")
        if text is None and scenario not in SCENARIOS:
            raise ValueError(f"Unknown scenario: {scenario!r}. Valid scenarios: {list(SCENARIOS)}")
        self.text = text
        self.scenario = scenario
        self.profile = profile
        self.chunk_size = max(chunk_size, 1)
        self.fail_with = fail_with
        self.fail_after = fail_after
        self.chunks_sent = 0
        self.closed = False
        self.last_system: str | None = None

    def completion_for(self, prompt: str) -> str:
        """The full completion text streamed for a prompt."""
        if self.text is not None:
            return self.text
        return SCENARIOS.get(prompt.strip().lower(), SCENARIOS[self.scenario])

    async def stream(self, prompt: str, system: str | None = None) -> AsyncIterator[str]:
        """
        Stream the completion for a prompt in chunk_size pieces.

        A prompt that exactly names a scenario ("widget", "empty", ...) selects it.
        The system prompt is only recorded in last_system.
        """
        self.last_system = system
        delays = DELAY_PROFILES[self.profile]
        text = self.completion_for(prompt)
        chunks = [text[i : i + self.chunk_size] for i in range(0, len(text), self.chunk_size)]

        try:
            # Think time before first chunk
            if delays["think_ms"] > 0:
                await asyncio.sleep(delays["think_ms"] / 1000)

            for i, chunk in enumerate(chunks):
                if self.fail_with is not None and i >= self.fail_after:
                    raise self.fail_with
                yield chunk
                self.chunks_sent += 1

                if i < len(chunks) - 1 and delays["per_chunk_ms"] > 0:
                    await asyncio.sleep(delays["per_chunk_ms"] / 1000)

            if self.fail_with is not None and len(chunks) <= self.fail_after:
                raise self.fail_with
        finally:
            self.closed = True

    def list_scenarios(self) -> list[str]:
        """Return names of all available scenarios."""
        return sorted(SCENARIOS)
