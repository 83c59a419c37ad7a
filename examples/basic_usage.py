#!/usr/bin/env python3
"""Basic usage examples for the systems package."""

from pathlib import Path

import systems
from systems import ModelBuilder, RateRule

EXAMPLES = Path(__file__).parent


def load_and_run_model():
    """Example: Load a spec and render a run."""
    print("=" * 60)
    print("Example 1: Load and Run a Spec")
    print("=" * 60)

    model = systems.load(EXAMPLES / "hiring.txt")
    print(f"Stocks: {', '.join(stock.name for stock in model.stocks)}")
    print(f"Flows: {len(model.flows)}")

    results = model.run(5)
    print(model.render(results))

    return model


def analyze_model_structure():
    """Example: Inspect references and check a model."""
    print("\n" + "=" * 60)
    print("Example 2: Analyze Model Structure")
    print("=" * 60)

    model = systems.load(EXAMPLES / "extended_syntax.txt")

    for link in model.get_links():
        print(f"  {link}")

    print(f"\n{model.explain('EngRecruiter')}")

    issues = model.check()
    if not issues:
        print("\nNo issues found")
    for issue in issues:
        print(f"{issue.severity}: {issue.message}")

    return model


def work_with_dataframes():
    """Example: Get run results as a pandas DataFrame."""
    print("\n" + "=" * 60)
    print("Example 3: Working with DataFrames")
    print("=" * 60)

    model = systems.load(EXAMPLES / "links.txt")
    run = model.get_run(rounds=8)

    df = run.results
    print(df)
    print(f"\nPhone screens per round:\n{df['PhoneScreens'].diff().dropna()}")

    # Scenario comparison through overrides
    doubled = model.get_run(rounds=8, overrides={"Recruiters": 15})
    print(f"\nFinal offers, baseline vs more recruiters: "
          f"{run.final['Offers']} vs {doubled.final['Offers']}")

    return run


def build_in_code():
    """Example: Build a model without a spec and step through it."""
    print("\n" + "=" * 60)
    print("Example 4: Building and Stepping a Model")
    print("=" * 60)

    builder = ModelBuilder("tank")
    source = builder.stock("Reservoir", 100)
    tank = builder.stock("Tank", 0, 30)
    builder.flow(source, tank, RateRule.rate(12))
    builder.flow(tank, builder.infinite_stock("Drain"), RateRule.leak(0.25))
    model = builder.build()

    state = model.simulate()
    while state.round < 5:
        state.advance()
        print(f"round {state.round}: Tank = {state.get_value('Tank')}")

    return model


if __name__ == "__main__":
    load_and_run_model()
    analyze_model_structure()
    work_with_dataframes()
    build_in_code()
