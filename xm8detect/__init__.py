"""
XM8 Detect: building component and contents photo analysis.
- classifier: keyword taxonomy, primary detection, confidence tier, recommendations
- narrative: vision-LLM free text -> structured report, with fallback
- label_detection / gpt_vision: upstream adapters
- main: FastAPI application factory
"""

__version__ = "2.0.0"
