#!/usr/bin/env python3
"""
Basic usage examples for claude-messages.

This file demonstrates:
- Simple chat
- Streaming with full message reconstruction
- Retry policies and interceptors
- Token counting
- Error handling

Set ANTHROPIC_API_KEY before running.
"""

import asyncio
import logging

from claude_messages import (
    AsyncClaudeClient,
    ChatRequest,
    ClaudeClient,
    LoggingInterceptor,
    MessageParam,
    MetricsInterceptor,
    Model,
    RetryPolicy,
)


def example_simple_chat():
    """Basic single-turn chat."""
    print("=" * 60)
    print("Example: Simple Chat")
    print("=" * 60)

    with ClaudeClient() as client:
        request = ChatRequest(
            messages=[MessageParam.user("What is the capital of France?")],
            system="Answer in one sentence.",
        )
        response = client.execute_chat(request)

    print(f"Response: {response.text}")
    print(f"Model: {response.model}")
    print(f"Usage: {response.usage.input_tokens} in, {response.usage.output_tokens} out")
    print()


def example_streaming():
    """Print text as it arrives, then inspect the reconstructed message."""
    print("=" * 60)
    print("Example: Streaming")
    print("=" * 60)

    with ClaudeClient() as client:
        request = ChatRequest(messages=[MessageParam.user("Write a haiku about programming")])

        print("Streaming: ", end="", flush=True)
        with client.stream_chat(request) as stream:
            for text in stream.text_stream:
                print(text, end="", flush=True)
            final = stream.get_final_message()

    print(f"\nStop reason: {final.stop_reason}")
    print(f"Output tokens: {final.usage.output_tokens}")
    print()


def example_retry_and_interceptors():
    """Custom retry policy with logging and metrics."""
    print("=" * 60)
    print("Example: Retry and Interceptors")
    print("=" * 60)

    logging.basicConfig(level=logging.DEBUG)
    metrics = MetricsInterceptor()

    client = ClaudeClient(
        model=Model.CLAUDE_3_HAIKU,
        max_tokens=512,
        timeout=30.0,
        retry_policy=RetryPolicy(max_attempts=5, initial_delay=1.0, max_delay=10.0),
        interceptors=[LoggingInterceptor(log_requests=True, log_errors=True), metrics],
    )

    with client:
        client.execute_chat(ChatRequest(messages=[MessageParam.user("Hello!")]), timeout=10.0)

    print(f"Metrics: {metrics.snapshot()}")
    print()


def example_count_tokens():
    """Count the tokens a request would use."""
    print("=" * 60)
    print("Example: Token Counting")
    print("=" * 60)

    with ClaudeClient() as client:
        request = ChatRequest(messages=[MessageParam.user("How many tokens is this?")])
        count = client.count_tokens(request)

    print(f"Input tokens: {count.input_tokens}")
    print()


def example_error_handling():
    """Handling errors gracefully."""
    print("=" * 60)
    print("Example: Error Handling")
    print("=" * 60)

    from claude_messages import (
        ClaudeError,
        RateLimitError,
        AuthenticationError,
    )

    client = ClaudeClient(api_key="invalid-key")

    try:
        client.execute_chat(ChatRequest(messages=[MessageParam.user("Hello!")]))
    except RateLimitError as e:
        print(f"Rate limited! Server suggested {e.retry_after} seconds")
    except AuthenticationError as e:
        print(f"Auth failed: {e.user_message()}")
    except ClaudeError as e:
        print(f"API error [{e.category.value}]: {e}")
    finally:
        client.close()
    print()


async def example_async():
    """Concurrent requests with the async client."""
    print("=" * 60)
    print("Example: Async")
    print("=" * 60)

    async with AsyncClaudeClient() as client:
        questions = ["What is 2 + 2?", "Name a prime number.", "What color is the sky?"]
        responses = await asyncio.gather(*[
            client.execute_chat(ChatRequest(messages=[MessageParam.user(q)]))
            for q in questions
        ])

        for question, response in zip(questions, responses):
            print(f"{question} -> {response.text}")

        stream = await client.stream_chat(
            ChatRequest(messages=[MessageParam.user("Count to five.")])
        )
        async with stream:
            async for text in stream.text_stream:
                print(text, end="", flush=True)
    print("\n")


if __name__ == "__main__":
    print("\nclaude-messages - Basic Usage Examples\n")

    example_simple_chat()
    example_streaming()
    example_retry_and_interceptors()
    example_count_tokens()
    example_error_handling()
    asyncio.run(example_async())

    print("All examples completed!")
