# zyro/agents/agent.py
"""
A configured LLM role: system prompt, model and optional tools.
"""
from typing import Any, Callable, Dict, List, Optional

from zyro.core.logging import log
from zyro.core.types import ChatMessage, LLMResponse, OutputSegment
from .state import AgentResult, NetworkState


# on_response(result, network_state) runs after inference, before tools
ResponseHook = Callable[[AgentResult, NetworkState], None]


class Agent:
    """
    One agent invocation:
      1. build messages (history, input, prior iterations)
      2. one inference (recorded as a durable step when a runner is given)
      3. on_response hook
      4. requested tools, sequentially, in the order the model asked
    """

    def __init__(
        self,
        name: str,
        system_prompt: str,
        model: Any,
        tools: Optional[List[Any]] = None,
        on_response: Optional[ResponseHook] = None,
        description: str = "",
    ):
        self.name = name
        self.description = description
        self.system_prompt = system_prompt
        self.model = model
        self.tools: Dict[str, Any] = {t.name: t for t in tools or []}
        self.on_response = on_response

    def __repr__(self) -> str:
        return f"Agent({self.name})"

    def build_messages(
        self,
        input: str,
        history: List[ChatMessage],
        network: NetworkState,
    ) -> List[ChatMessage]:
        messages = list(history)
        messages.append(ChatMessage(role="user", content=input))
        for result in network.results:
            messages.extend(result.to_messages())
        return messages

    async def infer(self, messages: List[ChatMessage]) -> Dict[str, Any]:
        tools = [t.schema() for t in self.tools.values()] or None
        response: LLMResponse = await self.model.chat(self.system_prompt, messages, tools)
        return response.to_dict()

    async def run(
        self,
        input: str,
        history: Optional[List[ChatMessage]] = None,
        network: Optional[NetworkState] = None,
        step: Optional[Any] = None,
    ) -> AgentResult:
        network = network or NetworkState()
        messages = self.build_messages(input, history or [], network)

        if step is not None:
            data = await step.run(f"{self.name}-inference", lambda: self.infer(messages))
        else:
            data = await self.infer(messages)

        result = AgentResult(agent_name=self.name, response=LLMResponse.from_dict(data))
        log("AGENT", f"{self.name}: {len(result.response.text)} chars, {len(result.response.tool_calls)} tool call(s)")

        if self.on_response is not None:
            self.on_response(result, network)

        for call in result.response.tool_calls:
            tool = self.tools.get(call.name)
            if tool is None:
                output: Any = f"Error: unknown tool {call.name}"
            else:
                log("TOOL", f"🔧 {self.name} -> {call.name}")
                output = await tool.invoke(call.arguments, network.state, step)
            result.tool_results.append(OutputSegment(
                type="tool_result",
                content=output,
                tool_name=call.name,
                tool_call_id=call.id,
            ))

        return result
