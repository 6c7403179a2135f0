"""Prompt templates for each vision request purpose.

Templates are keyed by response language. Unknown languages fall back to
English. Every template asks for JSON only; percent coordinates always point
at the clickable centre of an element.
"""
from __future__ import annotations

from typing import Dict

DEFAULT_LANGUAGE = "en"

CLASSIFICATION_PROMPTS: Dict[str, str] = {
    "en": """SCREEN ANALYSIS - Identify what's on screen and where elements are located.

Look at this screenshot and tell me:
1. What type of screen is this (quiz, video, instructions, results, other)?
2. If it's a quiz, what is the question and what are the answer options?
3. What buttons are visible and where are they located?

For positions, describe the location using these REGION CODES:
- Position format: "row-column"
- Rows: "top" (0-20%), "upper" (20-40%), "middle" (40-60%), "lower" (60-80%), "bottom" (80-100%)
- Columns: "left" (0-25%), "center-left" (25-40%), "center" (40-60%), "center-right" (60-75%), "right" (75-100%)
If you can measure the exact centre, give "xPercent"/"yPercent" (0-100) instead of "region".

Return this JSON:
{
    "screenType": "quiz" | "video" | "instructions" | "results" | "other",
    "confidence": 0.0 to 1.0,
    "description": "one short sentence",
    "quiz": {
        "question": "The question text you see",
        "quizType": "multipleChoice" | "trueFalse" | "textInput",
        "options": [
            {"text": "option text", "letter": "A", "region": "upper-left", "isCorrect": true},
            {"text": "option text", "letter": "B", "region": "middle-left", "isCorrect": false}
        ],
        "correctAnswer": "A",
        "explanation": "why this is correct"
    },
    "buttons": {
        "submit": {"exists": true, "text": "Submit", "region": "bottom-center"},
        "next": {"exists": false, "text": "", "region": ""},
        "continue": {"exists": false, "text": "", "region": ""},
        "finish": {"exists": false, "text": "", "region": ""},
        "play": {"exists": false, "text": "", "region": ""},
        "startQuiz": {"exists": false, "text": "", "region": ""}
    },
    "video": {"isPlaying": false, "timeRemaining": 0, "hasControls": false}
}

RULES:
1. For options: point at the radio button/checkbox, not the text
2. Options are usually on the left side (left or center-left)
3. Submit/Next buttons are usually at the bottom (bottom-center or bottom-right)
4. Use the ACTUAL position you see in the image
5. Mark isCorrect: true only for the factually correct answer""",
    "pt-br": """ANALISE ESTA TELA - Observe a IMAGEM REAL e identifique as posições dos elementos.

SISTEMA DE COORDENADAS:
- xPercent: 0 = esquerda, 50 = centro, 100 = direita
- yPercent: 0 = topo, 50 = centro, 100 = base
- Meça o CENTRO EXATO de cada elemento clicável

Retorne esta estrutura JSON (com coordenadas REAIS da imagem):
{
    "screenType": "quiz" | "video" | "instructions" | "results" | "other",
    "confidence": 0.0 a 1.0,
    "description": "uma frase curta",
    "quiz": {
        "question": "O texto real da pergunta",
        "quizType": "multipleChoice" | "trueFalse" | "textInput" | null,
        "options": [
            {"text": "texto da opção", "letter": "A", "xPercent": <MEDIR_X>, "yPercent": <MEDIR_Y>, "isCorrect": <true_ou_false>}
        ],
        "correctAnswer": "letra da resposta correta",
        "explanation": "por que está correta"
    },
    "buttons": {
        "submit": {"exists": <true_ou_false>, "text": "texto do botão", "xPercent": <MEDIR_X>, "yPercent": <MEDIR_Y>},
        "next": {"exists": <true_ou_false>, "text": "texto do botão", "xPercent": <MEDIR_X>, "yPercent": <MEDIR_Y>},
        "continue": {"exists": <true_ou_false>, "text": "", "xPercent": 0, "yPercent": 0},
        "finish": {"exists": <true_ou_false>, "text": "", "xPercent": 0, "yPercent": 0},
        "play": {"exists": <true_ou_false>, "text": "", "xPercent": 0, "yPercent": 0},
        "startQuiz": {"exists": <true_ou_false>, "text": "", "xPercent": 0, "yPercent": 0}
    },
    "video": {"isPlaying": false, "timeRemaining": 0, "hasControls": false}
}

TIPOS DE TELA:
- "quiz": Pergunta com opções de resposta visíveis
- "video": Player de vídeo é o conteúdo principal
- "instructions": Texto/material de leitura (sem perguntas)
- "results": Pontuação ou mensagem de conclusão
- "other": Nenhum acima

Para CADA opção meça o círculo do radio button/checkbox; para CADA botão meça o centro do retângulo.
NÃO use valores de exemplo.""",
}

LAYOUT_LEARNING_PROMPTS: Dict[str, str] = {
    "en": """You are analyzing a quiz/test interface screenshot. Identify ALL interactive elements with PRECISE coordinates.

COORDINATE SYSTEM:
- xPercent: 0 = left edge, 50 = center, 100 = right edge
- yPercent: 0 = top edge, 50 = center, 100 = bottom edge
- Coordinates point to the CLICKABLE CENTER of each element

Return ONLY this JSON:
{
    "isQuiz": true,
    "isVideo": false,
    "quizType": "trueFalse" | "multipleChoice" | "textInput",
    "question": "The complete question text",
    "options": [
        {"text": "Full option text", "letter": "A", "xPercent": 15, "yPercent": 40, "isCorrect": false}
    ],
    "correctAnswer": "B",
    "explanation": "Brief explanation",
    "buttons": {
        "submit": {"exists": true, "text": "Submit", "xPercent": 50, "yPercent": 90},
        "next": {"exists": true, "text": "Next", "xPercent": 85, "yPercent": 90},
        "confirm": {"exists": false},
        "continue": {"exists": false},
        "skip": {"exists": false},
        "finish": {"exists": false}
    },
    "textInput": {"exists": false, "xPercent": 50, "yPercent": 55},
    "scroll": {"needed": false, "direction": "down"}
}

BUTTON DETECTION - Look for these common labels:
- Submit: "Submit", "Send", "Confirm", "Check", "Verify", "Done", "OK"
- Next: "Next", "Continue", "Forward", "→"
- Skip: "Skip", "Pass", "Later"
- Finish: "Finish", "Complete", "End"

CRITICAL RULES:
1. For OPTIONS: xPercent points to the radio button/checkbox, NOT the text
2. For BUTTONS: coordinates point to the button CENTER
3. If unsure, estimate from the visual layout (buttons are usually at the bottom)
4. Include ALL visible buttons, even partially visible ones
5. Mark ONLY the factually correct answer as isCorrect: true""",
    "pt-br": """Você está analisando uma captura de tela de interface de quiz/teste. Identifique TODOS os elementos interativos com coordenadas PRECISAS.

SISTEMA DE COORDENADAS:
- xPercent: 0 = borda esquerda, 50 = centro, 100 = borda direita
- yPercent: 0 = topo, 50 = centro, 100 = base
- Coordenadas apontam para o CENTRO CLICÁVEL de cada elemento

Retorne APENAS este JSON:
{
    "isQuiz": true,
    "isVideo": false,
    "quizType": "trueFalse" | "multipleChoice" | "textInput",
    "question": "Texto completo da pergunta",
    "options": [
        {"text": "Texto completo da opção", "letter": "A", "xPercent": 15, "yPercent": 40, "isCorrect": false}
    ],
    "correctAnswer": "B",
    "explanation": "Breve explicação",
    "buttons": {
        "submit": {"exists": true, "text": "Enviar", "xPercent": 50, "yPercent": 90},
        "next": {"exists": true, "text": "Próximo", "xPercent": 85, "yPercent": 90},
        "confirm": {"exists": false},
        "continue": {"exists": false},
        "skip": {"exists": false},
        "finish": {"exists": false}
    },
    "textInput": {"exists": false, "xPercent": 50, "yPercent": 55},
    "scroll": {"needed": false, "direction": "down"}
}

DETECÇÃO DE BOTÕES:
- Enviar: "Enviar", "Confirmar", "Verificar", "OK", "Submit"
- Próximo: "Próximo", "Próxima", "Continuar", "Avançar", "→", "Next"
- Pular: "Pular", "Ignorar", "Skip"
- Finalizar: "Finalizar", "Concluir", "Terminar", "Finish"

REGRAS: opções apontam para o radio button/checkbox, botões para o centro; marque APENAS a resposta correta com isCorrect: true.""",
    "es": """Estás analizando una captura de pantalla de interfaz de quiz/examen. Identifica TODOS los elementos interactivos con coordenadas PRECISAS.

SISTEMA DE COORDENADAS:
- xPercent: 0 = borde izquierdo, 50 = centro, 100 = borde derecho
- yPercent: 0 = arriba, 50 = centro, 100 = abajo
- Las coordenadas apuntan al CENTRO CLICKEABLE de cada elemento

Devuelve SOLO este JSON:
{
    "isQuiz": true,
    "quizType": "trueFalse" | "multipleChoice" | "textInput",
    "question": "Texto completo de la pregunta",
    "options": [
        {"text": "Texto completo de la opción", "letter": "A", "xPercent": 15, "yPercent": 40, "isCorrect": false}
    ],
    "correctAnswer": "B",
    "explanation": "Breve explicación",
    "buttons": {
        "submit": {"exists": true, "text": "Enviar", "xPercent": 50, "yPercent": 90},
        "next": {"exists": true, "text": "Siguiente", "xPercent": 85, "yPercent": 90},
        "confirm": {"exists": false},
        "skip": {"exists": false}
    }
}

DETECCIÓN DE BOTONES:
- Enviar: "Enviar", "Confirmar", "Verificar", "Aceptar", "Submit"
- Siguiente: "Siguiente", "Continuar", "Avanzar", "→", "Next"
- Saltar: "Saltar", "Omitir", "Skip"
- Finalizar: "Finalizar", "Terminar", "Completar", "Finish\"""",
}

QUICK_CHECK_PROMPTS: Dict[str, str] = {
    "en": """Quick check of this screen. Return ONLY JSON:
{
    "questionChanged": true/false,
    "newQuestion": "question text if changed",
    "correctAnswer": "A/B/C/D or answer text",
    "quizEnded": true/false,
    "isVideo": true/false,
    "buttonsVisible": {"submit": true/false, "next": true/false, "finish": true/false, "continueWatching": true/false},
    "continueButton": {"xPercent": 50, "yPercent": 50} or null
}

BUTTONS TO DETECT:
- continueWatching: "Continue Watching", "Resume", "Keep Watching", "Play", "Continue"
- finish: "Finish", "Complete", "Done", "End Quiz"

Set quizEnded=true if you see a results/score screen with no more questions.
Set isVideo=true if a video player is visible.""",
    "pt-br": """Verificação rápida desta tela. Retorne APENAS JSON:
{
    "questionChanged": true/false,
    "newQuestion": "texto da pergunta se mudou",
    "correctAnswer": "A/B/C/D ou texto da resposta",
    "quizEnded": true/false,
    "isVideo": true/false,
    "buttonsVisible": {"submit": true/false, "next": true/false, "finish": true/false, "continueWatching": true/false},
    "continueButton": {"xPercent": 50, "yPercent": 50} ou null
}

BOTÕES PARA DETECTAR:
- continueWatching: "Continuar Assistindo", "Retomar", "Continuar", "Play", "Reproduzir"
- finish: "Finalizar", "Concluir", "Terminar", "Encerrar Quiz"

Defina quizEnded=true se vir uma tela de resultados/pontuação sem mais perguntas.
Defina isVideo=true se um player de vídeo estiver visível.""",
}

ANSWER_ONLY_PROMPTS: Dict[str, str] = {
    "en": """This is a quiz with {option_count} options.
Read the question and tell me the correct answer.
Return ONLY: {{"answer": "A", "explanation": "why"}}""",
    "pt-br": """Este é um quiz com {option_count} opções.
Leia a pergunta e me diga a resposta correta.
Retorne APENAS: {{"answer": "A", "explanation": "porque"}}""",
}

BUTTON_CHECK_PROMPTS: Dict[str, str] = {
    "en": """Quick check: Is there a {role} button visible? Look for buttons labeled: Submit, Next, Continue, Confirm, Finish, Send, Enviar, Próximo, Continuar.
Return ONLY JSON: {{"found": true/false, "xPercent": X, "yPercent": Y, "text": "button text"}}""",
    "pt-br": """Verificação rápida: Existe um botão de {role} visível? Procure botões como: Enviar, Próximo, Continuar, Confirmar, Finalizar.
Retorne APENAS JSON: {{"found": true/false, "xPercent": X, "yPercent": Y, "text": "texto do botão"}}""",
}

VIDEO_CHECK_PROMPTS: Dict[str, str] = {
    "en": """Check current screen state. Return ONLY JSON:
{
    "screenType": "video" | "quiz" | "instructions" | "other",
    "videoPlaying": true/false,
    "videoEnded": true/false,
    "timeRemaining": seconds or null,
    "hasQuizNow": true/false,
    "continueButton": {"xPercent": X, "yPercent": Y, "text": "text"} or null,
    "playButton": {"xPercent": X, "yPercent": Y} or null
}""",
    "pt-br": """Verifique o estado atual da tela. Retorne APENAS JSON:
{
    "screenType": "video" | "quiz" | "instructions" | "other",
    "videoPlaying": true/false,
    "videoEnded": true/false,
    "timeRemaining": número em segundos ou null,
    "hasQuizNow": true/false,
    "continueButton": {"xPercent": X, "yPercent": Y, "text": "texto"} ou null,
    "playButton": {"xPercent": X, "yPercent": Y} ou null
}""",
}


def _pick(templates: Dict[str, str], language: str) -> str:
    return templates.get((language or DEFAULT_LANGUAGE).lower(), templates[DEFAULT_LANGUAGE])


def classification_prompt(language: str = DEFAULT_LANGUAGE) -> str:
    return _pick(CLASSIFICATION_PROMPTS, language)


def layout_learning_prompt(language: str = DEFAULT_LANGUAGE) -> str:
    return _pick(LAYOUT_LEARNING_PROMPTS, language)


def quick_check_prompt(language: str = DEFAULT_LANGUAGE) -> str:
    return _pick(QUICK_CHECK_PROMPTS, language)


def answer_only_prompt(language: str = DEFAULT_LANGUAGE, option_count: int = 4) -> str:
    return _pick(ANSWER_ONLY_PROMPTS, language).format(option_count=option_count)


def button_check_prompt(language: str = DEFAULT_LANGUAGE, role: str = "submit") -> str:
    return _pick(BUTTON_CHECK_PROMPTS, language).format(role=role)


def video_check_prompt(language: str = DEFAULT_LANGUAGE) -> str:
    return _pick(VIDEO_CHECK_PROMPTS, language)


def with_resolution(prompt: str, width: int, height: int) -> str:
    return f"{prompt}\n\nResolution: {width}x{height}"


__all__ = [
    "DEFAULT_LANGUAGE",
    "answer_only_prompt",
    "button_check_prompt",
    "classification_prompt",
    "layout_learning_prompt",
    "quick_check_prompt",
    "video_check_prompt",
    "with_resolution",
]
