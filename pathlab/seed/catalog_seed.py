from decimal import Decimal

from pathlab.database import SessionLocal
from pathlab.models.catalog import TestDefinition


TESTS = [
    {"name": "Complete Blood Count", "category": "Haematology", "price": "300"},
    {"name": "Haemoglobin", "category": "Haematology", "price": "100"},
    {"name": "ESR", "category": "Haematology", "price": "80"},
    {"name": "Platelet Count", "category": "Haematology", "price": "150"},
    {"name": "Blood Group & Rh Type", "category": "Haematology", "price": "120"},
    {"name": "Peripheral Smear", "category": "Haematology", "price": "200"},
    {"name": "Blood Sugar Fasting", "category": "Biochemistry", "price": "80"},
    {"name": "Blood Sugar PP", "category": "Biochemistry", "price": "80"},
    {"name": "Blood Sugar Random", "category": "Biochemistry", "price": "80"},
    {"name": "HbA1c", "category": "Biochemistry", "price": "450"},
    {"name": "Lipid Profile", "category": "Biochemistry", "price": "600"},
    {"name": "Liver Function Test", "category": "Biochemistry", "price": "650"},
    {"name": "Kidney Function Test", "category": "Biochemistry", "price": "600"},
    {"name": "Serum Creatinine", "category": "Biochemistry", "price": "150"},
    {"name": "Blood Urea", "category": "Biochemistry", "price": "150"},
    {"name": "Serum Uric Acid", "category": "Biochemistry", "price": "180"},
    {"name": "Serum Electrolytes", "category": "Biochemistry", "price": "400"},
    {"name": "Thyroid Profile (T3 T4 TSH)", "category": "Immunology", "price": "550"},
    {"name": "TSH", "category": "Immunology", "price": "250"},
    {"name": "Vitamin D", "category": "Immunology", "price": "1200"},
    {"name": "Vitamin B12", "category": "Immunology", "price": "900"},
    {"name": "CRP", "category": "Serology", "price": "350"},
    {"name": "Widal Test", "category": "Serology", "price": "200"},
    {"name": "Dengue NS1 Antigen", "category": "Serology", "price": "600"},
    {"name": "Malaria Antigen", "category": "Serology", "price": "350"},
    {"name": "HIV I & II", "category": "Serology", "price": "400"},
    {"name": "HBsAg", "category": "Serology", "price": "300"},
    {"name": "Urine Routine", "category": "Clinical Pathology", "price": "150"},
    {"name": "Stool Routine", "category": "Clinical Pathology", "price": "150"},
    {"name": "Urine Culture", "category": "Microbiology", "price": "700"},
]


def seed_catalog():
    """Insert the shared test catalog when it has no global entries yet."""
    db = SessionLocal()
    try:
        if db.query(TestDefinition).filter(TestDefinition.lab_id.is_(None)).first():
            return
        for item in TESTS:
            db.add(
                TestDefinition(
                    name=item["name"],
                    category=item["category"],
                    price=Decimal(item["price"]),
                    lab_id=None,
                )
            )
        db.commit()
    finally:
        db.close()
