#!/usr/bin/env python3
"""Simple CLI for trying pumpscope locally"""

import argparse
import asyncio
import json

from pumpscope.config import settings
from pumpscope.core.dispatcher import IntentDispatcher
from pumpscope.core.functions import get_function_registry
from pumpscope.core.messages import user_message_for
from pumpscope.errors import PumpscopeError
from pumpscope.logging_config import clear_exchange_context, setup_logging
from pumpscope.services.pump_data import get_pump_data_service
from pumpscope.types import (
    ChatMessage,
    LocalFunctionResult,
    PlainTextResult,
    QueryRequest,
    RemoteFunctionResult,
    TraderDetail,
)
from pumpscope.types.pump import TESTDATA_SOURCE


def format_envelope(envelope) -> str:
    """Render a result envelope for the terminal"""
    if isinstance(envelope, PlainTextResult):
        return envelope.content
    if isinstance(envelope, LocalFunctionResult):
        body = json.dumps(envelope.data.model_dump(), indent=2)
        return f"[{envelope.fc_type.value}]\n{body}"
    if isinstance(envelope, RemoteFunctionResult):
        return f"[remote:{envelope.name}]\n{json.dumps(envelope.payload, indent=2, default=str)}"
    return str(envelope)


def print_trader_detail(detail: TraderDetail) -> None:
    """Pretty print a trader detail composite"""
    overview = detail.overview
    print(f"\n📊 Trader {detail.trader.address}")
    print("=" * 50)
    if overview is not None:
        print(f"Net Profit:     {overview.total_net_profit:,.4f} SOL")
        print(f"Profit Ratio:   {overview.profit_ratio:.2%}")
        print(f"Win Ratio:      {overview.net_profit_win_ratio:.2%}")
        print(f"Tokens Traded:  {overview.traded_token_count}")
        print(f"Total Cost:     {overview.total_cost:,.4f} SOL")

    if detail.profit:
        print("\nDaily Profit:")
        for row in detail.profit:
            print(f"  {row.date:<28} net {row.net_profit:>14,.4f}  gross {row.gross_profit:>14,.4f}")

    print("\nProfit Distribution:")
    for row in detail.profit_distribution:
        print(f"  {row.profit_margin_bucket:<16} {row.token_count:>6}")

    if detail.trades:
        print("\nTrade Times:")
        for row in detail.trades:
            print(f"  {row.time_range:<16} {row.tx_count:>6}")


async def cli_chat(project_id: str = ""):
    """Interactive chat mode"""
    print("🤖 Pumpscope Chat")
    print("Type 'exit' to quit, 'help' for commands")
    print("-" * 40)

    history_window = settings.chat_history_window
    dispatcher = IntentDispatcher(history_window=history_window)
    messages = []

    while True:
        try:
            user_input = input("\n💬 You: ").strip()

            if user_input.lower() in ['exit', 'quit', 'q']:
                print("Goodbye! 👋")
                break

            elif user_input.lower() in ['help', 'h']:
                print("\nCommands:")
                print("  help - Show this help")
                print("  exit - Quit the chat")
                print("  clear - Clear chat history")
                print("  Show me the top traders this week")
                print("  How many tokens launched on pump.fun in the last 7 days?")
                continue

            elif user_input.lower() == 'clear':
                messages = []
                print("Chat history cleared.")
                continue

            elif not user_input:
                continue

            messages.append(ChatMessage(role="user", content=user_input))
            messages = messages[-history_window:]

            print("🤖 Assistant: ", end="")
            envelope = await dispatcher.resolve(messages, project_id)
            reply = format_envelope(envelope)
            print(reply)

            if isinstance(envelope, PlainTextResult):
                messages.append(ChatMessage(role="assistant", content=reply))

        except KeyboardInterrupt:
            print("\nGoodbye! 👋")
            break
        except PumpscopeError as e:
            print(f"❌ {user_message_for(e)} ({e.message})")
        finally:
            clear_exchange_context()


def cli_functions():
    """Print the advertised function catalog"""
    print(json.dumps(get_function_registry().schemas(), indent=2))


async def cli_trader_detail(address: str, duration: int, timezone: str, testdata: bool):
    """CLI command to aggregate a trader's detail"""
    print(f"🔍 Fetching trader detail for {address}...")
    request = QueryRequest(
        address=address,
        duration=duration,
        timezone=timezone,
        source=TESTDATA_SOURCE if testdata else "",
    )
    try:
        detail = await get_pump_data_service().trader_detail(request)
    except PumpscopeError as e:
        print(f"❌ {user_message_for(e)} ({e.message})")
        return
    print_trader_detail(detail)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Pumpscope CLI")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command")

    chat_parser = subparsers.add_parser("chat", help="Interactive chat mode")
    chat_parser.add_argument("--project-id", default="", help="Routing context for the reasoning backend")

    subparsers.add_parser("functions", help="Print the function catalog")

    detail_parser = subparsers.add_parser("trader-detail", help="Aggregate a trader's detail")
    detail_parser.add_argument("address", help="Trader address")
    detail_parser.add_argument("--duration", type=int, default=7, help="Window in days (default: 7)")
    detail_parser.add_argument("--timezone", default="", choices=["", "UTC", "CST"], help="UTC or CST")
    detail_parser.add_argument("--testdata", action="store_true", help="Use synthetic data instead of Metabase")

    return parser


async def main():
    parser = build_parser()
    args = parser.parse_args()
    setup_logging(args.log_level or "WARNING")

    if not args.command:
        parser.print_help()
        return

    command = args.command.lower()

    if command == "chat":
        await cli_chat(args.project_id)

    elif command == "functions":
        cli_functions()

    elif command == "trader-detail":
        if args.duration <= 0:
            raise ValueError("Duration must be positive")
        await cli_trader_detail(args.address, args.duration, args.timezone, args.testdata)

    else:
        print(f"❌ Unknown command: {command}")
        parser.print_help()


def _entrypoint():
    asyncio.run(main())


if __name__ == "__main__":
    _entrypoint()
