"""
Chat assistant backed by Amazon Bedrock, with canned answers when it is unreachable.
"""

import json
import logging
from typing import Dict, List, Optional

import numpy as np
from botocore.exceptions import BotoCoreError, ClientError

from aws_clients import get_bedrock_client
from config import BEDROCK_MODEL_ID

logger = logging.getLogger(__name__)

OFFLINE_RESPONSE = (
    "I'm currently operating in offline mode. SageMaker Autopilot helps you build ML models "
    "without requiring ML expertise by automating algorithm selection and hyperparameter tuning."
)

FALLBACK_RESPONSES = [
    "I'm having trouble connecting to the backend services right now. SageMaker Autopilot automates "
    "the machine learning workflow from data preparation to model deployment.",
    "There seems to be a connection issue. SageMaker Autopilot can automatically build, train, and tune "
    "the best machine learning models based on your data.",
    OFFLINE_RESPONSE,
]

WELCOME_MESSAGE = (
    "👋 Hi there! I'm your Amazon Bedrock powered assistant. Ask me anything about Amazon SageMaker "
    "Autopilot and how it can help with your machine learning workflows."
)

SYSTEM_PREAMBLE = (
    "\n\nHuman: You are an AI assistant specializing in Amazon SageMaker Autopilot. Answer questions about "
    "SageMaker's automated machine learning capabilities, focusing on how it handles data preparation, "
    "model selection, training, and deployment. Keep responses helpful, accurate, and concise."
    "\n\nAssistant: I'll help answer questions about Amazon SageMaker Autopilot's automated machine "
    "learning capabilities.\n\n"
)

INFERENCE_PARAMS = {
    "max_tokens_to_sample": 500,
    "temperature": 0.7,
    "top_k": 250,
    "top_p": 0.999,
    "stop_sequences": ["\n\nHuman:"],
}


def format_prompt_for_bedrock(messages: List[Dict[str, str]]) -> str:
    """Render chat history as a Human/Assistant transcript; other roles are skipped."""
    prompt = SYSTEM_PREAMBLE
    for message in messages:
        role = message.get("role")
        if role == "user":
            prompt += f"Human: {message.get('content', '')}\n\n"
        elif role == "assistant":
            prompt += f"Assistant: {message.get('content', '')}\n\n"
    prompt += "Assistant:"
    return prompt


def generate_response(messages: List[Dict[str, str]], client=None) -> str:
    """Send the conversation to Bedrock and return the completion text."""
    prompt = format_prompt_for_bedrock(messages)
    try:
        client = client or get_bedrock_client()
        response = client.invoke_model(
            modelId=BEDROCK_MODEL_ID,
            contentType="application/json",
            accept="application/json",
            body=json.dumps({"prompt": prompt, **INFERENCE_PARAMS}),
        )
        body = json.loads(response["body"].read())
    except (BotoCoreError, ClientError) as e:
        logger.error("Error calling Bedrock: %s", e)
        return OFFLINE_RESPONSE

    completion = body.get("completion")
    if completion is None:
        logger.error("Bedrock response has no completion: %s", sorted(body))
        return OFFLINE_RESPONSE
    return completion


def handle_chat(payload: Dict, client=None) -> Dict[str, str]:
    """Chat endpoint body: {"messages": [...]} -> {"response": "..."}."""
    messages = payload.get("messages") or []
    return {"response": generate_response(messages, client=client)}


def pick_fallback_response(rng: Optional[np.random.Generator] = None) -> str:
    rng = rng or np.random.default_rng()
    return FALLBACK_RESPONSES[int(rng.integers(len(FALLBACK_RESPONSES)))]
