"""Text rendering for frame labels."""

import pygame


class TextRenderer:
    """Renders text overlays onto pygame surfaces."""

    def __init__(self, font_name: str = None, font_size: int = 24,
                 color: tuple = (255, 255, 255)):
        pygame.font.init()
        if font_name:
            self.font = pygame.font.SysFont(font_name, font_size)
        else:
            self.font = pygame.font.Font(None, font_size)
        self.color = color

    def draw_text(self, surface: pygame.Surface, text: str, x: int, y: int):
        """
        Draw text onto the surface.

        Args:
            surface: Target surface
            text: The string to render
            x: X position from left edge
            y: Y position from top edge
        """
        text_surface = self.font.render(text, True, self.color)
        surface.blit(text_surface, (x, y))
