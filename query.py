#!/usr/bin/env python3
"""Ad hoc query runner for the ForkAI content pipeline.

Run one generation task directly, without the web layer.

Usage:
    python query.py recipe "creamy mushroom pasta"
    python query.py --servings 2 list "quick weeknight dinners"
    python query.py --image images/fridge.jpg vision
    python query.py nutrition "200 g spaghetti, 2 eggs, 50 g pecorino"
    python query.py substitute "butter"
    python query.py meal-plan "vegetarian, high protein"
    python query.py chat "How long should I rest a steak?"
    python query.py --debug recipe "pasta"  # Show full JSON response

Features:
- Same request validation and error classification as the web layer (handle_request)
- Markdown rendering of recipes, nutrition reports, substitutes and meal plans
- Debug mode to display the full JSON body
"""

import asyncio
import base64
import sys
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown

from forkai.agents.generation import handle_request
from forkai.utils.logger import logger

console = Console()

TASKS = {
    "recipe": "recipe",
    "list": "recipe_list",
    "vision": "vision",
    "nutrition": "nutrition",
    "substitute": "substitution",
    "meal-plan": "meal_plan",
    "chat": "chat",
}


def build_payload(task: str, text: str, servings: int = None, image_path: str = None) -> dict:
    """Turn command-line input into the task's request payload."""
    if task in ("recipe", "recipe_list"):
        payload = {"query": text}
    elif task == "vision":
        image_file = Path(image_path)
        if not image_file.exists():
            console.print(f"[red]✗ Error: Image file not found: {image_path}[/red]")
            sys.exit(1)
        image_data = base64.b64encode(image_file.read_bytes()).decode("utf-8")
        logger.info(f"✓ Loaded image: {image_file.name} ({len(image_data) / 1024:.1f} KB base64)")
        payload = {"image": image_data}
    elif task == "nutrition":
        payload = {"ingredients": [item.strip() for item in text.split(",")]}
    elif task == "substitution":
        payload = {"ingredient": text}
    elif task == "meal_plan":
        payload = {"preferences": text}
    else:
        payload = {"messages": [{"content": text, "isUser": True}]}

    if servings is not None and task not in ("substitution", "chat"):
        payload["servings"] = servings
    return payload


def format_recipe(recipe: dict) -> str:
    lines = [
        f"## {recipe['title']}",
        f"{recipe['category']} · ⏱️ {recipe['durationMinutes']} min · 👥 {recipe['servings']}",
        "",
        recipe["description"],
    ]
    if recipe.get("imageUrl"):
        lines += ["", f"![{recipe['title']}]({recipe['imageUrl']})"]
    if recipe.get("usedIngredients"):
        lines += ["", f"**Uses:** {', '.join(recipe['usedIngredients'])}"]
    lines += ["", "**Ingredients**", ""] + [f"- {item}" for item in recipe["ingredients"]]
    lines += ["", "**Steps**", ""] + [f"{i}. {step}" for i, step in enumerate(recipe["steps"], start=1)]
    return "\n".join(lines)


def format_response(task: str, body: dict) -> str:
    """Render a successful response body as markdown."""
    if task == "recipe":
        return format_recipe(body["recipe"])
    if task in ("recipe_list", "vision"):
        parts = []
        if task == "vision":
            parts.append(f"**{body['message']}**\n\nDetected: {', '.join(body['ingredients']) or '-'}")
        parts += [format_recipe(recipe) for recipe in body["recipes"]]
        return "\n\n---\n\n".join(parts)
    if task == "nutrition":
        report = body["nutrition"]
        portion = report["perPortion"]
        return "\n".join(
            [
                f"## Score {report['score']}/10 ({report['scoreColor']}) {report['scoreLabel']}",
                "",
                f"Per portion: {portion['calories']:.0f} kcal, {portion['proteins']:.0f} g protein, "
                f"{portion['carbs']:.0f} g carbs, {portion['fats']:.0f} g fat",
                "",
                "**Strengths**",
                *[f"- {item}" for item in report["strengths"]],
                "",
                "**Improvements**",
                *[f"- {item}" for item in report["improvements"]],
                "",
                f"💡 {report['tip']}",
            ]
        )
    if task == "substitution":
        result = body["result"]
        lines = [f"## Substitutes for {result['ingredient']}", "", result["reason"], ""]
        lines += [f"- {s['emoji']} **{s['name']}** ({s['ratio']}): {s['impact']}" for s in result["substitutes"]]
        return "\n".join(lines + ["", f"💡 {result['tips']}"])
    if task == "meal_plan":
        plan = body["plan"]
        lines = [f"## Week plan · ~{plan['weekSummary']['avgCalories']} kcal/day", ""]
        for day in plan["days"]:
            meals = day["meals"]
            lines.append(f"**{day['dayEmoji']} {day['day']}**")
            lines += [f"- {slot}: {meals[slot]['emoji']} {meals[slot]['name']}" for slot in meals]
            lines.append("")
        return "\n".join(lines + [plan["nutritionBalance"]])
    return body["reply"]


def run_query(task: str, text: str, debug: bool = False, servings: int = None, image_path: str = None) -> None:
    """Execute a single task and print the response.

    Args:
        task: Pipeline task name (e.g. "recipe", "recipe_list").
        text: Free text for the task (query, ingredient list, message).
        debug: If True, display the full JSON body.
        servings: Optional servings override.
        image_path: Image file for the vision task.
    """
    try:
        payload = build_payload(task, text, servings=servings, image_path=image_path)
        logger.info(f"Running {task}: {text}")
        logger.info("---")

        status, body = asyncio.run(handle_request(task, payload))

        logger.info("---")
        console.print()  # Blank line for separation

        if debug:
            console.print(f"[bold cyan]Debug Mode: Full Response (status {status})[/bold cyan]")
            console.print("[dim]" + "=" * 60 + "[/dim]")
            console.print_json(data=body)
            console.print("[dim]" + "=" * 60 + "[/dim]")
            console.print()

        if status != 200:
            console.print(f"[red]✗ Error {status}: {body['error']}[/red]")
            sys.exit(1)

        console.print(Markdown(format_response(task, body)))

    except KeyboardInterrupt:
        logger.info("\nQuery interrupted by user.")
        sys.exit(0)


def print_usage() -> None:
    print("Usage: python query.py [--debug] [--servings N] [--image PATH] <task> \"<text>\"")
    print(f"Tasks: {', '.join(TASKS)}")
    print("")
    print("Examples:")
    print("  python query.py recipe \"creamy mushroom pasta\"")
    print("  python query.py --servings 2 list \"quick weeknight dinners\"")
    print("  python query.py --image images/fridge.jpg vision")
    print("  python query.py --debug substitute \"butter\"")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print_usage()
        sys.exit(1)

    debug_mode = False
    servings = None
    image_path = None
    argv_start = 1

    while argv_start < len(sys.argv) and sys.argv[argv_start].startswith("--"):
        flag = sys.argv[argv_start]
        if flag == "--debug":
            debug_mode = True
            argv_start += 1
        elif flag in ("--servings", "--image"):
            argv_start += 1
            if argv_start >= len(sys.argv):
                print(f"Error: {flag} flag requires a value")
                sys.exit(1)
            if flag == "--servings":
                if not sys.argv[argv_start].isdigit():
                    print("Error: --servings must be a positive integer")
                    sys.exit(1)
                servings = int(sys.argv[argv_start])
            else:
                image_path = sys.argv[argv_start]
            argv_start += 1
        else:
            print(f"Unknown flag: {flag}")
            sys.exit(1)

    if argv_start >= len(sys.argv) or sys.argv[argv_start] not in TASKS:
        print("Error: No valid task provided")
        print_usage()
        sys.exit(1)

    task = TASKS[sys.argv[argv_start]]
    if task == "vision" and image_path is None:
        print("Error: the vision task requires --image PATH")
        sys.exit(1)

    # Join all arguments after the task as the text (handles text with spaces)
    text = " ".join(sys.argv[argv_start + 1:])
    if not text and task != "vision":
        print("Error: No query provided")
        print_usage()
        sys.exit(1)

    run_query(task, text, debug=debug_mode, servings=servings, image_path=image_path)
