import json
import logging
from typing import Any, Dict, List
import google.generativeai as genai
from app.core.config import GEMINI_API_KEY, GEMINI_MODEL
from app.core.exceptions import ExternalServiceError

log = logging.getLogger(__name__)

# Configure Gemini
if GEMINI_API_KEY:
    genai.configure(api_key=GEMINI_API_KEY)


def build_forecast_prompt(snapshot: List[Dict[str, Any]], month: str, year: int) -> str:
    return f"""You are an inventory demand forecasting AI for a retail furniture store. Analyze the following sales and inventory data, then predict demand for the next 30 days.

Current Date: {month} {year}
Product Sales Data: {json.dumps(snapshot, indent=2, default=str)}

For each product, provide:
1. Predicted demand (units) for next 30 days
2. Confidence score (0-1)
3. Seasonality level (high/medium/low)
4. Trend direction (up/down/stable)
5. Key factors influencing the prediction

Respond in this exact JSON format:
{{
  "forecasts": [
    {{
      "productName": "...",
      "sku": "...",
      "predictedQty": 0,
      "confidence": 0.0,
      "seasonality": "medium",
      "trend": "stable",
      "factors": "explanation of factors"
    }}
  ],
  "summary": "brief overall market analysis",
  "recommendations": ["actionable recommendation 1", "recommendation 2"]
}}"""


async def gemini_forecaster(snapshot: List[Dict[str, Any]], month: str, year: int) -> str:
    """
    Asks Gemini for a 30-day demand forecast and returns the raw response text.
    Raises ExternalServiceError when the service is not configured or fails.
    """
    if not GEMINI_API_KEY:
        raise ExternalServiceError("Gemini API key not configured. Set GEMINI_API_KEY.")

    prompt = build_forecast_prompt(snapshot, month, year)
    try:
        model = genai.GenerativeModel(GEMINI_MODEL)
        response = await model.generate_content_async(prompt)
        return response.text
    except Exception as e:
        raise ExternalServiceError(
            "Gemini forecast request failed.",
            details={"service_name": "gemini", "original_error": str(e)},
        ) from e
