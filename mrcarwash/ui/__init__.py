"""Streamlit screens and the view helpers behind them."""
