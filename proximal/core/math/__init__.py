"""
Core math modules для proximal

- bits: подсчёт ведущих нулей (порядок денормалов)
- ulp: ULP и допуск N на масштабе значения

Модули импортируются напрямую: bits используется слоем представлений,
а ulp строится поверх него.
"""
