"""Daily nutrient ranges per age group.

Values are simplified program guidance (kcal for calories, grams for
the macronutrients), used by validate_nutrition.
"""

from __future__ import annotations

AGE_GROUP_STANDARDS: dict[str, dict[str, dict[str, float]]] = {
    "BALITA_2_5": {
        "calories": {"min": 1000, "max": 1400},
        "protein": {"min": 20, "max": 35},
        "carbohydrates": {"min": 130, "max": 200},
        "fat": {"min": 30, "max": 50},
    },
    "ANAK_6_12": {
        "calories": {"min": 1400, "max": 2000},
        "protein": {"min": 25, "max": 45},
        "carbohydrates": {"min": 150, "max": 250},
        "fat": {"min": 35, "max": 60},
    },
    "REMAJA_13_18": {
        "calories": {"min": 1800, "max": 2500},
        "protein": {"min": 40, "max": 70},
        "carbohydrates": {"min": 200, "max": 300},
        "fat": {"min": 50, "max": 80},
    },
    "DEWASA_19_59": {
        "calories": {"min": 1800, "max": 2500},
        "protein": {"min": 50, "max": 80},
        "carbohydrates": {"min": 200, "max": 350},
        "fat": {"min": 50, "max": 90},
    },
}

# (field, Indonesian label, unit suffix)
VALIDATED_NUTRIENTS: tuple[tuple[str, str, str], ...] = (
    ("calories", "Kalori", " kal"),
    ("protein", "Protein", "g"),
    ("carbohydrates", "Karbohidrat", "g"),
    ("fat", "Lemak", "g"),
)

# Minimum per-1000-kcal densities that each earn one quality point
DENSITY_THRESHOLDS: dict[str, float] = {
    "protein_density": 25,
    "vitamin_a_density": 200,
    "vitamin_c_density": 15,
    "calcium_density": 300,
    "iron_density": 3,
}

COMPLIANCE_LOW_PCT = 80
COMPLIANCE_HIGH_PCT = 120

# Recommendation per (nutrient, status); missing pairs get none
COMPLIANCE_RECOMMENDATIONS: dict[tuple[str, str], str] = {
    ("calories", "LOW"): "Tambahkan bahan makanan berenergi tinggi untuk memenuhi kebutuhan kalori",
    ("calories", "EXCESSIVE"): "Kurangi porsi atau ganti dengan bahan rendah kalori",
    ("protein", "LOW"): "Tingkatkan sumber protein (daging, ikan, telur, atau kacang-kacangan)",
    ("protein", "EXCESSIVE"): "Seimbangkan asupan protein dengan nutrisi lainnya",
    ("carbohydrates", "LOW"): "Tambahkan karbohidrat kompleks (nasi, roti, atau pasta)",
    ("fat", "LOW"): "Tambahkan lemak sehat (minyak zaitun, alpukat, atau kacang)",
    ("fat", "EXCESSIVE"): "Kurangi penggunaan minyak dan lemak dalam masakan",
    ("fiber", "LOW"): "Tingkatkan serat dengan menambah sayuran, buah, atau biji-bijian",
}
