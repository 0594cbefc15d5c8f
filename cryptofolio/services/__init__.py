"""Service modules"""
from .controller import ControllerState, PortfolioController
from .report import build_portfolio_report

__all__ = ["ControllerState", "PortfolioController", "build_portfolio_report"]
