import numpy as np
import pandas as pd


def calculate_monthly_payment(principal: float, annual_rate_percent: float, term_years: float) -> float:
    """
    Standard fixed-rate amortization formula:
    M = P * [ r(1+r)^n / ((1+r)^n - 1) ]
    P = loan principal
    r = monthly interest rate (annual percent / 100 / 12)
    n = number of payments (months)

    Zero or negative principal is not rejected; the result follows the formula.
    """
    r = annual_rate_percent / 100.0 / 12.0
    n = term_years * 12

    if r == 0:
        return principal / n

    growth = (1 + r) ** n
    return principal * (r * growth) / (growth - 1)


def amortization_schedule(principal: float, annual_rate_percent: float, term_years: int) -> pd.DataFrame:
    """
    Month-by-month split of each level payment into interest and principal.

    Columns: period, payment, interest, principal, balance.
    For any positive rate the last balance is ~0.
    """
    n = int(term_years * 12)
    r = annual_rate_percent / 100.0 / 12.0
    payment = calculate_monthly_payment(principal, annual_rate_percent, term_years)

    interest = np.empty(n, dtype=float)
    principal_paid = np.empty(n, dtype=float)
    balance = np.empty(n, dtype=float)

    remaining = float(principal)
    for i in range(n):
        interest[i] = remaining * r
        principal_paid[i] = payment - interest[i]
        remaining -= principal_paid[i]
        balance[i] = remaining

    return pd.DataFrame(
        {
            "period": np.arange(1, n + 1),
            "payment": np.full(n, payment),
            "interest": interest,
            "principal": principal_paid,
            "balance": balance,
        }
    )
