"""
Crowd Level Scraper - Lotação de restaurantes a partir do widget
"Popular times" do Google, com agendamento por prioridade e pool de proxies.
"""

__version__ = "1.0.0"
