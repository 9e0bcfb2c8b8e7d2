"""
Narrative explanation renderer for RCT analysis results.

``explain_effects`` takes a fitted ``EffectsResult`` and returns a formatted
multi-line string. The result's ``executive_summary()`` method calls it.
"""
from __future__ import annotations

_SEP = "━" * 66


# ── Shared helpers ─────────────────────────────────────────────────────────────

def _fmt_p(p: float) -> str:
    if p < 0.001:
        return "p < 0.001"
    return f"p = {p:.3f}"


def _fmt_ci(lo: float, hi: float) -> str:
    return f"[{lo:.4f}, {hi:.4f}]"


def _list_vars(names: list[str]) -> str:
    if len(names) == 1:
        return names[0]
    return ", ".join(names[:-1]) + f" and {names[-1]}"


def _effect_phrase(effect: float, treatment: str, outcome: str) -> str:
    direction = "increase" if effect >= 0 else "decrease"
    return (
        f"assignment to {treatment} is estimated to cause "
        f"an {direction} of {abs(effect):.4f} in the share of units with {outcome} = 1"
    )


# ── Section builders ───────────────────────────────────────────────────────────

def _assumptions_section(assumptions: list) -> str:
    n = len(assumptions)
    n_u = sum(1 for a in assumptions if not a.testable)
    n_t = n - n_u

    intro = (
        f"{n_u} of the {n} required assumptions {'is' if n_u == 1 else 'are'} untestable "
        f"and must be justified by the study design; "
        f"{n_t} can be checked in the data."
    )
    lines = ["ASSUMPTIONS", intro, ""]
    for a in assumptions:
        lines.append(f"  {a.fmt_tag()}  {a.name}")
    return "\n".join(lines)


def _estimate_sentence(est) -> str:
    lo, hi = est.conf_int
    return (
        f"  • {est.label}: {est.estimate:.4f} "
        f"(SE = {est.std_err:.4f}, 95% CI: {_fmt_ci(lo, hi)}, {_fmt_p(est.pvalue)})"
    )


# ── Explanation ────────────────────────────────────────────────────────────────

def explain_effects(result) -> str:
    spec = result.spec
    T, Y = spec.treatment, spec.outcome
    covs = list(spec.covariates)
    dm = result.difference_in_means

    adjust_note = (
        f"A final regression adds {_list_vars(covs)} as controls. Under randomisation "
        f"this does not change what is estimated but can sharpen precision."
        if covs else
        "No covariates were specified, so the adjusted model matches the unadjusted one."
    )

    result_lines = [
        "RESULT",
        f"Treated units had a mean {Y} that differs from control units by "
        f"{dm.estimate:.4f}; that is, {_effect_phrase(dm.estimate, T, Y)}.",
        "",
    ]
    result_lines += [_estimate_sentence(est) for est in result.regression_estimates]
    for key, reason in result.errors.items():
        result_lines.append(f"  • {key} was not estimated: {reason}")

    blocks = [
        "\n".join([_SEP, f"Executive Summary — Randomized Controlled Trial",
                   f"  {T} → {Y}  |  estimand: ATE", _SEP]),

        "\n".join([
            "METHOD",
            f"Because {T} was randomly assigned, the Average Treatment Effect (ATE) "
            f"is estimated as the difference in mean {Y} between treated and control "
            f"units. The same quantity is recovered by an OLS regression of {Y} on {T}, "
            f"reported with classical and with HC2 heteroskedasticity-robust standard "
            f"errors. {adjust_note}",
        ]),

        _assumptions_section(result.assumptions),
        "\n".join(result_lines),

        "\n".join([
            "CAVEATS",
            f"These estimates are only valid if treatment was truly randomly assigned. "
            f"Confidence intervals use a normal approximation (estimate ± 1.96 × SE), "
            f"which can be too narrow in small samples. Non-compliance, attrition, or "
            f"interference between units can invalidate the causal interpretation even "
            f"in a well-designed RCT.",
        ]),

        _SEP,
    ]
    return "\n\n".join(blocks)
