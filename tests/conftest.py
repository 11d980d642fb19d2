"""Shared test fixtures for complaint-classifier tests."""

from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from complaint_classifier.models import Product

# Each product has distinctive vocabulary to make classification feasible
CREDIT_CARD_DOCS = [
    "My credit card was charged twice for the same purchase on XX/XX/2021.",
    "The card issuer refused to remove a fraudulent charge from my credit card statement.",
    "I disputed a charge on my prepaid card and the dispute was closed without notice.",
    "Credit card interest rate increased to 29.99% without any warning letter.",
    "Someone used my card number XXXX-XXXX-XXXX-1234 for fraud charges overseas.",
    "The card company reported a late fee even though the statement balance was paid.",
    "My prepaid card balance disappeared and the card support line kept me on hold.",
    "Annual fee charged on my credit card after they promised the card had no fee.",
]

MORTGAGE_DOCS = [
    "My mortgage servicer misapplied my escrow payment for property taxes.",
    "The mortgage company denied my loan modification after I sent every document.",
    "Escrow shortage added $450 to my monthly mortgage payment without explanation.",
    "Foreclosure notice arrived while my mortgage modification was still under review.",
    "The servicer lost my mortgage payment and reported it late to the bureaus.",
    "Homeowners insurance was force placed on my mortgage although I had coverage.",
    "My mortgage escrow account was not refunded after the home was sold in XXXX.",
    "Mortgage servicer transferred the loan and the new servicer charged foreclosure fees.",
]

STUDENT_LOAN_DOCS = [
    "My student loan servicer placed my loans in forbearance without asking me.",
    "Income driven repayment application for my student loan was never processed.",
    "The student loan servicer reported my federal loans delinquent during deferment.",
    "Public service loan forgiveness payments on my student loan were not counted.",
    "Private student loan lender refuses to release my cosigner as promised.",
    "My student loan balance grew because the servicer capitalized interest twice.",
    "Student loan payments were applied to the wrong loan group by the servicer.",
    "The servicer lost my deferment paperwork and my student loan went into default.",
]

VEHICLE_LOAN_DOCS = [
    "The auto lender repossessed my vehicle even though the payment was on time.",
    "My vehicle loan payoff amount was wrong and the title was not released.",
    "The dealer added gap insurance to my vehicle loan without my consent.",
    "Vehicle lease turn in charges for excess wear were higher than the contract said.",
    "Auto loan servicer charged a repossession fee for my vehicle in error.",
    "The lender refused to send my vehicle title after the auto loan was paid off.",
    "My car lease company billed me for mileage after the vehicle lease ended.",
    "Auto finance company kept charging my vehicle loan after the car was totaled.",
]


@pytest.fixture
def labeled_rows() -> list[tuple[str, str]]:
    """(product, narrative) pairs, eight per product."""
    return (
        [(Product.CREDIT_CARD.value, d) for d in CREDIT_CARD_DOCS]
        + [(Product.MORTGAGE.value, d) for d in MORTGAGE_DOCS]
        + [(Product.STUDENT_LOAN.value, d) for d in STUDENT_LOAN_DOCS]
        + [(Product.VEHICLE_LOAN.value, d) for d in VEHICLE_LOAN_DOCS]
    )


@pytest.fixture
def training_csv(tmp_path: Path, labeled_rows: list[tuple[str, str]]) -> Path:
    """Labeled complaint export with the database's column names."""
    frame = pd.DataFrame(
        {
            "Date received": ["2021-01-01"] * len(labeled_rows),
            "Product": [product for product, _ in labeled_rows],
            "Consumer complaint narrative": [text for _, text in labeled_rows],
        }
    )
    path = tmp_path / "complaints.csv"
    frame.to_csv(path, index=False)
    return path


@pytest.fixture
def inference_csv(tmp_path: Path) -> Path:
    """Unlabeled narratives for prediction, one of them missing."""
    frame = pd.DataFrame(
        {
            "Consumer complaint narrative": [
                "My mortgage escrow payment was misapplied by the servicer.",
                None,
                "The student loan servicer put my loans in forbearance.",
                "My vehicle was repossessed by the auto lender.",
            ]
        }
    )
    path = tmp_path / "unlabeled.csv"
    frame.to_csv(path, index=False)
    return path
