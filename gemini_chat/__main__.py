from gemini_chat.api.main import run

run()
