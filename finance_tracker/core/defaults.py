"""Global default categories offered to every user."""

from finance_tracker.core.models import Polarity

UNCATEGORIZED = "Sin categoría"

DEFAULT_CATEGORIES: list[dict[str, object]] = [
    {"name": "Salario", "type": Polarity.INCOME, "color": "#10b981", "icon": "💰"},
    {"name": "Freelance", "type": Polarity.INCOME, "color": "#059669", "icon": "💼"},
    {"name": "Inversiones", "type": Polarity.INCOME, "color": "#34d399", "icon": "📈"},
    {"name": "Otros ingresos", "type": Polarity.INCOME, "color": "#6ee7b7", "icon": "💵"},
    {"name": "Alimentación", "type": Polarity.EXPENSE, "color": "#ef4444", "icon": "🍔"},
    {"name": "Transporte", "type": Polarity.EXPENSE, "color": "#f97316", "icon": "🚗"},
    {"name": "Vivienda", "type": Polarity.EXPENSE, "color": "#f59e0b", "icon": "🏠"},
    {"name": "Servicios", "type": Polarity.EXPENSE, "color": "#eab308", "icon": "💡"},
    {"name": "Entretenimiento", "type": Polarity.EXPENSE, "color": "#84cc16", "icon": "🎮"},
    {"name": "Salud", "type": Polarity.EXPENSE, "color": "#22c55e", "icon": "⚕️"},
    {"name": "Educación", "type": Polarity.EXPENSE, "color": "#06b6d4", "icon": "📚"},
    {"name": "Compras", "type": Polarity.EXPENSE, "color": "#3b82f6", "icon": "🛍️"},
    {"name": "Restaurantes", "type": Polarity.EXPENSE, "color": "#6366f1", "icon": "🍽️"},
    {"name": "Viajes", "type": Polarity.EXPENSE, "color": "#8b5cf6", "icon": "✈️"},
    {"name": "Seguros", "type": Polarity.EXPENSE, "color": "#a855f7", "icon": "🛡️"},
    {"name": "Otros gastos", "type": Polarity.EXPENSE, "color": "#ec4899", "icon": "📦"},
]
