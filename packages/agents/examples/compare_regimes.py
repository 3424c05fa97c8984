#!/usr/bin/env python3
"""
Simples Nacional vs IBS/CBS Comparison Demo

Runs the comparison agent for one business and prints the result. Without
an API key (TRIBUTO_LLM_API_KEY or ANTHROPIC_API_KEY) the deterministic
calculator answers.

Usage:
    python examples/compare_regimes.py
    python examples/compare_regimes.py --revenue 50000 --purchases 2000 --payroll 30000 --sector SERVICES --annex 3 --rate 6
    python examples/compare_regimes.py --variant expert --json
"""

import argparse
import asyncio
import sys
from decimal import Decimal

from tributo_agents import ComparisonAgent, TributoConfig, configure_logging
from tributo_core.models import BusinessSector, TaxInput
from tributo_core.prompts import PromptVariant


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Compare the Simples and IBS/CBS regimes")
    parser.add_argument("--revenue", type=Decimal, default=Decimal("208000"), help="Monthly revenue (R$)")
    parser.add_argument("--purchases", type=Decimal, default=Decimal("140000"), help="Monthly purchases (R$)")
    parser.add_argument("--payroll", type=Decimal, default=Decimal("29852"), help="Monthly payroll (R$)")
    parser.add_argument("--other-inputs", type=Decimal, default=Decimal("15000"), help="Other creditable inputs (R$)")
    parser.add_argument("--sector", choices=[s.value for s in BusinessSector], default=BusinessSector.COMMERCE.value)
    parser.add_argument("--annex", type=int, default=1, help="Simples annex (1-5)")
    parser.add_argument("--rate", type=Decimal, default=None, help="Declared Simples rate (percent)")
    parser.add_argument("--variant", choices=[v.value for v in PromptVariant], default=None)
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    config = TributoConfig()
    if args.variant:
        config.resilience.prompt_variant = PromptVariant(args.variant)
    configure_logging(config)

    tax_input = TaxInput(
        monthly_revenue=args.revenue,
        monthly_purchases=args.purchases,
        payroll=args.payroll,
        other_inputs=args.other_inputs,
        sector=BusinessSector(args.sector),
        simples_annex=args.annex,
        custom_simples_rate=args.rate,
    )

    agent = ComparisonAgent(config)
    agent_result = await agent.process(tax_input)
    if agent_result.is_error:
        print(f"Error: {agent_result.error}", file=sys.stderr)
        return 1

    result = agent_result.data
    if args.json:
        print(result.model_dump_json(by_alias=True, indent=2))
        return 0

    print("=" * 70)
    print("TRIBUTO RADAR - Simples Nacional vs IBS/CBS")
    print("=" * 70)
    print(f"  - Source: {result.source.value} (health score {result.health_score})")
    print(f"  - Simples total: R$ {result.simples_total:,.2f}")
    print(f"  - IBS/CBS total: R$ {result.reform_total:,.2f}")
    print(f"  - Monthly savings: R$ {result.savings:,.2f}")
    print(f"  - Annual savings: R$ {result.annual_savings:,.2f}")
    print(f"  - Recommendation: {result.recommendation.value}")
    print()
    print(result.analysis)
    print()
    for point in result.strategic_roadmap:
        print(f"[{point.impact_level.label}] {point.title}")
        for action in point.actions:
            print(f"    * {action.task}")
    for warning in agent_result.warnings:
        print(f"  ! {warning}")
    return 0


def main() -> int:
    return asyncio.run(run(parse_args()))


if __name__ == "__main__":
    sys.exit(main())
