import asyncio
import json
import logging
from typing import Optional
from tagnlu.core.bus import Bus
from tagnlu.core.config import Config
from tagnlu.core.contracts import STTTranscript
from tagnlu.core.nlu.engine import NLUEngine
from tagnlu.core.nlu.nlu import NLU


async def start_components(bus: Bus, engine: Optional[NLUEngine] = None, forward_traces: bool = False) -> NLU:
    """Subscribe the NLU component to the bus."""
    nlu = NLU(bus, engine=engine or Config.get_nlu_engine(), forward_traces=forward_traces)
    await nlu.start()
    return nlu


async def _print_intent(payload: dict) -> None:
    if payload.get("error"):
        print(f"[error] {payload['error']}")
        return
    print(f"[intent] {payload['intent']} ({payload['confidence']:.2f})")
    for name, slot in payload.get("slots", {}).items():
        print(f"  {name} ({slot['type']}): {slot['raw_value']!r} -> {json.dumps(slot['value'])}")


async def repl(bus: Bus) -> None:
    """Tiny REPL that publishes stt.transcript to test the NLU pipeline."""
    print("\ntagnlu interactive mode")
    print("Type an utterance to classify it. Type 'quit' to exit.")

    while True:
        try:
            print("\n> ", end="", flush=True)
            # input in worker thread to keep event loop responsive
            user_input = await asyncio.to_thread(input)
            user_input = user_input.strip()

            if user_input.lower() in ["quit", "exit", "q"]:
                break

            if user_input:
                stt_event = STTTranscript(text=user_input)
                await bus.publish(stt_event.topic, stt_event.dict())

        except KeyboardInterrupt:
            break
        except EOFError:
            break


async def main() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(name)s: %(message)s")
    bus = Bus()
    print("Starting tagnlu...")
    Config.print_config()
    nlu = await start_components(bus)
    bus.subscribe("nlu.intent", _print_intent)
    print("Components ready.")
    await repl(bus)
    await nlu.stop()
    bus.clear()
    print("Stopped.")


if __name__ == "__main__":
    asyncio.run(main())
