#!/usr/bin/env python3
"""
Interactive REPL for the calculus visualizer core.
Try commands like 'derivative(x^3)', 'integral(x^2, 0, 3)' or 'limit(sin(x)/x, 0)'.
Type 'help' for the command list and 'quit' to exit.
"""
import traceback

from calculus_engine import CalculusEngine
from user_levels import SettingsStore, format_value, get_level_definition
from utils.precision_manager import get_dps, presets, set_dps
from utils.trace_helpers import format_events, recent_events


def _print_help(engine):
    print("Commands:")
    for line in engine.help_lines():
        print(f"  {line}")
    print("  level [beginner|expert|professional]  show or change the display level")
    print("  precision [N]            show or change working precision, N in", presets())
    print("  trace                    toggle trace display")
    print("  quit                     exit")


def _show_result(result, level):
    """Numbers are shown at the level's precision; expressions as-is."""
    try:
        value = float(result)
    except ValueError:
        print(f"Result: {result}")
        return
    print(f"Result: {format_value(value, level)}")


def main():
    """Run the interactive REPL."""
    print("=" * 80)
    print("Calculus visualizer REPL")
    print("Type 'help' for commands, 'quit' to exit")
    print("=" * 80)

    settings = SettingsStore()
    level = settings.current_level()
    engine = CalculusEngine()
    show_trace = False

    while True:
        try:
            user_input = input("calc> ").strip()
            if not user_input:
                continue
            command = user_input.lower()
            if command == 'quit':
                print("Goodbye!")
                break

            if command == 'help':
                _print_help(engine)
                continue

            if command == 'trace':
                show_trace = not show_trace
                print(f"Traceback display: {'ON' if show_trace else 'OFF'}")
                continue

            #  level commands  -----------------------------------------------
            if command.split()[0] == 'level':
                parts = command.split()
                if len(parts) == 2:
                    if settings.set_level(parts[1]):
                        level = settings.current_level()
                    else:
                        print(f"Unknown level: {parts[1]}")
                        continue
                definition = get_level_definition(level)
                print(f"Level: {definition.name} ({definition.precision} decimals)")
                continue

            #  precision commands  -------------------------------------------
            if command.split()[0] == 'precision':
                parts = command.split()
                if len(parts) == 2:
                    try:
                        set_dps(int(parts[1]))
                    except ValueError as e:
                        print(f"Error: {e}")
                        continue
                    # engines read the precision at construction
                    engine = CalculusEngine()
                print(f"Working precision: {get_dps()} dps")
                continue

            result = engine.compute(user_input)
            _show_result(result, level)

            if show_trace:
                print("\nTracebacks:")
                print(format_events(recent_events(engine)))

        except KeyboardInterrupt:
            print("\nGoodbye!")
            break
        except EOFError:
            break
        except Exception as e:
            print(f"Error: {e}")
            if show_trace:
                traceback.print_exc()


if __name__ == '__main__':
    main()
