"""
derivsim — количественное ядро симуляции торговли опционами на фьючерсы.

Слои (от листьев к корню):
- core: численные примитивы, доменные модели, контракты, ошибки, логирование
- config: конфигурация сессии
- pricing: Black-76, спреды и комиссии
- matching: исполнение ордеров против синтетического рынка
- risk: агрегирование Greeks, VaR, жизненный цикл нарушений лимитов
- scoring: drawdown и итоговый score
- session: per-participant actors, публикация снапшотов, leaderboard
"""

__version__ = "0.3.0"
