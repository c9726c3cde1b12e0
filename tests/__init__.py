"""
Suite de tests para sistema de migración PostgreSQL → MongoDB.

Los tests NO se conectan a servidores reales, validan:
- Sintaxis de código Python
- Implementación correcta de las interfaces de stores
- Motor de migración contra stores en memoria (tests/helpers.py)
- Traducción de errores y consultas con drivers simulados
"""
