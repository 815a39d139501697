PRODUCT_CATEGORIES = (
    "Fruits",
    "Vegetables",
    "Meat",
    "Dairy",
    "Bakery",
    "Drinks",
    "Other",
)
